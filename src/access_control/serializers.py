"""Serializers for RBAC administration resources."""

from rest_framework import serializers

from .models import (
    AuditLogEntry,
    Module,
    Permission,
    Role,
    UserRole,
    split_permission_name,
)


class ModuleSerializer(serializers.ModelSerializer):
    permission_count = serializers.SerializerMethodField()
    sort_order = serializers.IntegerField(required=False, min_value=0)

    class Meta:
        model = Module
        fields = [
            "id",
            "name",
            "display_name",
            "description",
            "icon",
            "color",
            "sort_order",
            "is_system",
            "permission_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "is_system", "created_at", "updated_at"]

    @staticmethod
    def get_permission_count(obj) -> int:
        annotated = getattr(obj, "permission_count", None)
        return annotated if annotated is not None else obj.permissions.count()


class PermissionSerializer(serializers.ModelSerializer):
    """Permission payloads; ``action``/``resource`` default to the name's parts.

    The module is addressed by its slug so clients can write permissions
    without looking up numeric ids first.
    """

    module = serializers.SlugRelatedField(
        slug_field="name", queryset=Module.objects.all(), required=False, allow_null=True
    )
    action = serializers.CharField(required=False, allow_blank=True)
    resource = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = Permission
        fields = [
            "id",
            "name",
            "display_name",
            "description",
            "action",
            "resource",
            "module",
            "is_system",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "is_system", "created_at", "updated_at"]

    def validate(self, attrs):
        """Derive action/resource from the name and reject mismatches."""
        name = attrs.get("name") or getattr(self.instance, "name", None)
        if name:
            action, resource = split_permission_name(name)
            errors = {}
            if attrs.get("action") and attrs["action"] != action:
                errors["action"] = [f"Must be '{action}' for permission '{name}'."]
            if attrs.get("resource") and attrs["resource"] != resource:
                errors["resource"] = [f"Must be '{resource}' for permission '{name}'."]
            if errors:
                raise serializers.ValidationError(errors)
            attrs["action"], attrs["resource"] = action, resource
        return attrs


class RoleSerializer(serializers.ModelSerializer):
    permissions = serializers.SlugRelatedField(slug_field="name", many=True, read_only=True)
    user_count = serializers.SerializerMethodField()

    class Meta:
        model = Role
        fields = [
            "id",
            "name",
            "display_name",
            "description",
            "is_system",
            "sort_order",
            "permissions",
            "user_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "is_system", "created_at", "updated_at"]

    @staticmethod
    def get_user_count(obj) -> int:
        annotated = getattr(obj, "user_count", None)
        return annotated if annotated is not None else obj.user_roles.count()


class RolePermissionsSerializer(serializers.Serializer):
    """Full replacement of a role's permission set, by permission name."""

    permissions = serializers.SlugRelatedField(
        slug_field="name", many=True, queryset=Permission.objects.all()
    )


class UserRoleSerializer(serializers.ModelSerializer):
    role = serializers.SlugRelatedField(slug_field="name", read_only=True)

    class Meta:
        model = UserRole
        fields = ["id", "user_id", "role", "assigned_by", "assigned_at", "expires_at", "is_active"]
        read_only_fields = fields


class UserRoleAssignmentSerializer(serializers.Serializer):
    """Replace all roles of one user with the given role names."""

    user_id = serializers.UUIDField()
    roles = serializers.SlugRelatedField(slug_field="name", many=True, queryset=Role.objects.all())
    expires_at = serializers.DateTimeField(required=False, allow_null=True)


class AuditLogEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLogEntry
        fields = [
            "id",
            "actor_id",
            "action",
            "resource_type",
            "resource_id",
            "details",
            "ip_address",
            "user_agent",
            "correlation_id",
            "created_at",
        ]
        read_only_fields = fields


__all__ = [
    "AuditLogEntrySerializer",
    "ModuleSerializer",
    "PermissionSerializer",
    "RolePermissionsSerializer",
    "RoleSerializer",
    "UserRoleAssignmentSerializer",
    "UserRoleSerializer",
]
