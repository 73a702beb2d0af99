"""RBAC domain operations: permission resolution, safe deletes, and auditing.

Every mutation runs inside ``transaction.atomic`` together with its audit
entry, so a failed audit write rolls the change back.
"""

import logging
import uuid
from typing import Any, Iterable

from django.db import transaction

from core.exceptions import ConflictError, SystemResourceProtected
from core.http import get_client_ip, get_user_agent
from core.log_context import get_correlation_id
from .models import AuditLogEntry, Module, Permission, Role, RolePermission, UserRole

logger = logging.getLogger(__name__)


def get_user_roles(user_id) -> list[Role]:
    """Roles granted to ``user_id`` through active, unexpired assignments."""
    return list(
        Role.objects.filter(user_roles__in=UserRole.objects.active().filter(user_id=user_id)).distinct()
    )


def get_effective_permissions(user_id) -> frozenset[str]:
    """Union of permission names over the user's active roles."""
    role_ids = list(UserRole.objects.active().filter(user_id=user_id).values_list("role_id", flat=True))
    if not role_ids:
        return frozenset()
    names = (
        Permission.objects.filter(role_permissions__role_id__in=role_ids)
        .values_list("name", flat=True)
        .distinct()
    )
    return frozenset(names)


def ensure_mutable(instance) -> None:
    if getattr(instance, "is_system", False):
        raise SystemResourceProtected(
            f"System {instance._meta.model_name} '{instance}' cannot be modified or deleted."
        )


class AuditService:
    """Write append-only audit entries for administrative changes."""

    @staticmethod
    def _actor_id(request) -> uuid.UUID | None:
        user = getattr(request, "user", None)
        if user is None or not getattr(user, "is_authenticated", False):
            return None
        return getattr(user, "id", None)

    @classmethod
    def log_action(
        cls,
        request,
        action: str,
        resource_type: str,
        resource_id: Any = "",
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry.objects.create(
            actor_id=cls._actor_id(request),
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            details=details or {},
            ip_address=get_client_ip(request) if request is not None else "",
            user_agent=get_user_agent(request) if request is not None else "",
            correlation_id=get_correlation_id(),
        )
        logger.info("Audit %s %s:%s by %s", action, resource_type, resource_id, entry.actor_id)
        return entry


def set_role_permissions(role: Role, permissions: Iterable[Permission], request=None) -> list[str]:
    """Replace the permission set granted by ``role``."""
    ensure_mutable(role)
    wanted = {permission.pk: permission for permission in permissions}

    with transaction.atomic():
        current = set(RolePermission.objects.filter(role=role).values_list("permission_id", flat=True))
        removed = current - wanted.keys()
        added = wanted.keys() - current
        RolePermission.objects.filter(role=role, permission_id__in=removed).delete()
        RolePermission.objects.bulk_create(
            [RolePermission(role=role, permission_id=permission_id) for permission_id in added]
        )
        names = sorted(permission.name for permission in wanted.values())
        AuditService.log_action(
            request,
            "role.permissions.set",
            "role",
            role.pk,
            {"permissions": names, "added": len(added), "removed": len(removed)},
        )
    return names


def assign_roles(user_id: uuid.UUID, roles: Iterable[Role], request=None, expires_at=None) -> list[UserRole]:
    """Replace the set of roles assigned to ``user_id``."""
    wanted = {role.pk: role for role in roles}
    assigned_by = AuditService._actor_id(request)

    with transaction.atomic():
        UserRole.objects.filter(user_id=user_id).exclude(role_id__in=wanted.keys()).delete()
        for role in wanted.values():
            UserRole.objects.update_or_create(
                user_id=user_id,
                role=role,
                defaults={"is_active": True, "expires_at": expires_at, "assigned_by": assigned_by},
            )
        AuditService.log_action(
            request,
            "user.roles.set",
            "user",
            user_id,
            {"roles": sorted(role.name for role in wanted.values())},
        )
    return list(UserRole.objects.filter(user_id=user_id).select_related("role"))


def delete_role(role: Role, request=None) -> None:
    ensure_mutable(role)
    with transaction.atomic():
        if UserRole.objects.filter(role=role).exists():
            raise ConflictError(f"Role '{role.name}' is still assigned to users.")
        details = {"name": role.name}
        role_id = role.pk
        role.delete()
        AuditService.log_action(request, "role.delete", "role", role_id, details)


def delete_permission(permission: Permission, request=None) -> None:
    ensure_mutable(permission)
    with transaction.atomic():
        if RolePermission.objects.filter(permission=permission).exists():
            raise ConflictError(f"Permission '{permission.name}' is still granted by roles.")
        details = {"name": permission.name}
        permission_id = permission.pk
        permission.delete()
        AuditService.log_action(request, "permission.delete", "permission", permission_id, details)


def delete_module(module: Module, request=None) -> None:
    ensure_mutable(module)
    with transaction.atomic():
        if Permission.objects.filter(module=module).exists():
            raise ConflictError(f"Module '{module.name}' still contains permissions.")
        details = {"name": module.name}
        module_id = module.pk
        module.delete()
        AuditService.log_action(request, "module.delete", "module", module_id, details)


__all__ = [
    "AuditService",
    "assign_roles",
    "delete_module",
    "delete_permission",
    "delete_role",
    "ensure_mutable",
    "get_effective_permissions",
    "get_user_roles",
    "set_role_permissions",
]
