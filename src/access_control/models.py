"""RBAC models: Module, Permission, Role, their bindings, and the audit log."""

import re

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Max, Q
from django.utils import timezone

PERMISSION_NAME_RE = re.compile(r"^[a-z][a-z0-9_-]*:[a-z][a-z0-9_-]*$")


def validate_permission_name(value: str) -> None:
    """Permission names must have the ``action:resource`` shape."""
    if not isinstance(value, str) or not PERMISSION_NAME_RE.match(value):
        raise ValidationError(
            "Permission name must match 'action:resource' (lowercase letters, digits, '_' or '-').",
            code="invalid_permission_name",
        )


def split_permission_name(name: str) -> tuple[str, str]:
    action, resource = name.split(":", 1)
    return action, resource


class Module(models.Model):
    """Grouping of permissions shown together in the admin navigation."""

    name = models.SlugField(max_length=50, unique=True)
    display_name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    icon = models.CharField(max_length=50, default="Circle")
    color = models.CharField(max_length=20, default="#6B7280")
    sort_order = models.PositiveIntegerField(blank=True)
    is_system = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sort_order", "name"]

    def save(self, *args, **kwargs):
        if self.sort_order is None:
            current = Module.objects.aggregate(value=Max("sort_order"))["value"]
            self.sort_order = 0 if current is None else current + 1
        super().save(*args, **kwargs)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name


class Permission(models.Model):
    """A named capability (``action:resource``) that roles can grant."""

    name = models.CharField(max_length=100, unique=True, validators=[validate_permission_name])
    display_name = models.CharField(max_length=150)
    description = models.TextField(blank=True)
    action = models.CharField(max_length=50, blank=True)
    resource = models.CharField(max_length=50, blank=True)
    module = models.ForeignKey(
        Module, on_delete=models.PROTECT, related_name="permissions", null=True, blank=True
    )
    is_system = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [models.Index(fields=["resource", "action"], name="perm_resource_action_idx")]

    def save(self, *args, **kwargs):
        # Enforced here too so ORM writes outside serializers cannot bypass it.
        validate_permission_name(self.name)
        action, resource = split_permission_name(self.name)
        if (self.action and self.action != action) or (self.resource and self.resource != resource):
            raise ValidationError("Permission action/resource must match its name.")
        self.action, self.resource = action, resource
        super().save(*args, **kwargs)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name


class Role(models.Model):
    """Named bundle of permissions assigned to users."""

    name = models.SlugField(max_length=50, unique=True)
    display_name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    is_system = models.BooleanField(default=False)
    sort_order = models.PositiveIntegerField(default=0)
    permissions = models.ManyToManyField(Permission, through="RolePermission", related_name="roles")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sort_order", "name"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name


class RolePermission(models.Model):
    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name="role_permissions")
    permission = models.ForeignKey(Permission, on_delete=models.PROTECT, related_name="role_permissions")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("role", "permission")

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.role.name} -> {self.permission.name}"


class UserRoleQuerySet(models.QuerySet):
    def active(self, now=None):
        """Assignments that currently count towards a user's permissions."""
        now = now or timezone.now()
        return self.filter(is_active=True).filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))


class UserRole(models.Model):
    """Assignment of a role to a hosted-auth identity."""

    user_id = models.UUIDField(db_index=True)
    role = models.ForeignKey(Role, on_delete=models.PROTECT, related_name="user_roles")
    assigned_by = models.UUIDField(null=True, blank=True)
    assigned_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    objects = UserRoleQuerySet.as_manager()

    class Meta:
        unique_together = ("user_id", "role")
        ordering = ["user_id", "role__sort_order"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.user_id} -> {self.role.name}"


class AuditLogQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ValidationError("Audit log entries are append-only.")

    def delete(self):
        raise ValidationError("Audit log entries are append-only.")


class AuditLogEntry(models.Model):
    """Append-only record of an administrative change."""

    actor_id = models.UUIDField(null=True, blank=True)
    action = models.CharField(max_length=50)
    resource_type = models.CharField(max_length=50)
    resource_id = models.CharField(max_length=64, blank=True)
    details = models.JSONField(default=dict, blank=True)
    ip_address = models.CharField(max_length=64, blank=True)
    user_agent = models.TextField(blank=True)
    correlation_id = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["resource_type", "resource_id"], name="audit_resource_idx")]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Audit log entries are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Audit log entries are append-only.")

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.action} {self.resource_type}:{self.resource_id}"


__all__ = [
    "AuditLogEntry",
    "Module",
    "Permission",
    "Role",
    "RolePermission",
    "UserRole",
    "validate_permission_name",
]
