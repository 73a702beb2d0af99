"""Permission guard: DRF permission class backed by role-based permission names."""

import logging
from dataclasses import dataclass
from typing import Any

from rest_framework import permissions
from rest_framework.exceptions import NotAuthenticated

from .services import get_effective_permissions

logger = logging.getLogger(__name__)

MANAGE_RBAC = "manage:rbac"


@dataclass(frozen=True)
class GuardContext:
    """What a guarded handler receives: the caller and their permission names."""

    user: Any
    permissions: frozenset[str]

    def has(self, name: str) -> bool:
        return name in self.permissions


def required_permission_for(view) -> str | None:
    """Permission name a view demands for the current action/method.

    ``permission_map`` (keyed by viewset action, or by lowercase HTTP method for
    plain views) wins over ``required_permission``.
    """
    permission_map = getattr(view, "permission_map", None) or {}
    action = getattr(view, "action", None)
    if action and action in permission_map:
        return permission_map[action]

    request = getattr(view, "request", None)
    method = getattr(request, "method", "") or ""
    if method.lower() in permission_map:
        return permission_map[method.lower()]

    return getattr(view, "required_permission", None)


def load_guard_context(request) -> GuardContext:
    """Resolve the caller's permissions once per request."""
    django_request = getattr(request, "_request", request)
    cached = getattr(django_request, "guard", None)
    if cached is not None:
        return cached

    context = GuardContext(user=request.user, permissions=get_effective_permissions(request.user.id))
    django_request.guard = context
    return context


class PermissionGuard(permissions.BasePermission):
    """Allow the request only if the caller holds the view's required permission.

    Views declare ``required_permission`` or a per-action ``permission_map``; a
    view declaring neither is denied. Anonymous callers get 401.
    """

    message = "You do not have permission to perform this action on this resource."

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if user is None or not getattr(user, "is_authenticated", False):
            raise NotAuthenticated()

        required = required_permission_for(view)
        if not required:
            logger.warning("Guard denied %s: view %s declares no permission", request.path, type(view).__name__)
            return False

        context = load_guard_context(request)
        if not context.has(required):
            logger.warning("Guard denied %s: user %s lacks %s", request.path, user.id, required)
            return False
        return True


def require_permission(name: str) -> type[PermissionGuard]:
    """Build a guard class pinned to a single permission name.

    Usage: ``permission_classes = [require_permission("view:cases")]``.
    """

    class _RequiredPermission(PermissionGuard):
        required_name = name

        def has_permission(self, request, view) -> bool:
            user = getattr(request, "user", None)
            if user is None or not getattr(user, "is_authenticated", False):
                raise NotAuthenticated()

            context = load_guard_context(request)
            if not context.has(self.required_name):
                logger.warning("Guard denied %s: user %s lacks %s", request.path, user.id, self.required_name)
                return False
            return True

    _RequiredPermission.__name__ = f"RequirePermission[{name}]"
    return _RequiredPermission


__all__ = [
    "GuardContext",
    "MANAGE_RBAC",
    "PermissionGuard",
    "load_guard_context",
    "require_permission",
    "required_permission_for",
]
