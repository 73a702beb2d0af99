"""ViewSets for RBAC administration: modules, permissions, roles, assignments, audit log."""

import uuid
from collections import defaultdict

from django.db import transaction
from django.db.models import Count
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.pagination import LimitOffsetPagination

from core.response import BaseAPIView, BaseReadOnlyViewSet, BaseViewSet, api_response
from .models import AuditLogEntry, Module, Permission, Role, UserRole
from .permissions import MANAGE_RBAC, PermissionGuard
from .serializers import (
    AuditLogEntrySerializer,
    ModuleSerializer,
    PermissionSerializer,
    RolePermissionsSerializer,
    RoleSerializer,
    UserRoleAssignmentSerializer,
    UserRoleSerializer,
)
from .services import (
    AuditService,
    assign_roles,
    delete_module,
    delete_permission,
    delete_role,
    ensure_mutable,
    set_role_permissions,
)


class AuditedAdminViewSet(BaseViewSet):
    """CRUD viewset guarded by ``manage:rbac`` that audits every mutation."""

    permission_classes = [PermissionGuard]
    required_permission = MANAGE_RBAC
    resource_type = ""

    def perform_create(self, serializer):
        with transaction.atomic():
            instance = serializer.save()
            AuditService.log_action(
                self.request,
                f"{self.resource_type}.create",
                self.resource_type,
                instance.pk,
                {"name": getattr(instance, "name", "")},
            )

    def perform_update(self, serializer):
        ensure_mutable(serializer.instance)
        with transaction.atomic():
            instance = serializer.save()
            AuditService.log_action(
                self.request,
                f"{self.resource_type}.update",
                self.resource_type,
                instance.pk,
                {"fields": sorted(serializer.validated_data.keys())},
            )


class ModuleViewSet(AuditedAdminViewSet):
    serializer_class = ModuleSerializer
    resource_type = "module"

    def get_queryset(self):
        # Aggregation drops Meta.ordering; display order is sort_order, then name.
        return Module.objects.annotate(permission_count=Count("permissions")).order_by("sort_order", "name")

    def perform_destroy(self, instance):
        delete_module(instance, self.request)


class PermissionViewSet(AuditedAdminViewSet):
    serializer_class = PermissionSerializer
    resource_type = "permission"

    def get_queryset(self):
        """Optionally narrow the list to one module via ``?module=<slug>``."""
        queryset = Permission.objects.select_related("module")
        module = self.request.query_params.get("module")
        if module:
            queryset = queryset.filter(module__name=module)
        return queryset

    def perform_destroy(self, instance):
        delete_permission(instance, self.request)


class RoleViewSet(AuditedAdminViewSet):
    serializer_class = RoleSerializer
    resource_type = "role"

    def get_queryset(self):
        return (
            Role.objects.annotate(user_count=Count("user_roles", distinct=True))
            .prefetch_related("permissions")
            .order_by("sort_order", "name")
        )

    def perform_destroy(self, instance):
        delete_role(instance, self.request)

    @action(detail=True, methods=["get", "put"], url_path="permissions")
    def permissions(self, request, pk=None):
        """Read or replace the set of permissions granted by a role."""
        role = self.get_object()
        if request.method == "GET":
            return api_response(sorted(permission.name for permission in role.permissions.all()))

        serializer = RolePermissionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        names = set_role_permissions(role, serializer.validated_data["permissions"], request)
        return api_response(names)


class UserRoleAssignmentView(BaseAPIView):
    """List role assignments grouped by user, or replace one user's roles."""

    permission_classes = [PermissionGuard]
    required_permission = MANAGE_RBAC

    @staticmethod
    def _grouped(assignments) -> list[dict]:
        grouped: dict[str, list] = defaultdict(list)
        for assignment in assignments:
            grouped[str(assignment.user_id)].append(UserRoleSerializer(assignment).data)
        return [{"user_id": user_id, "roles": roles} for user_id, roles in grouped.items()]

    def get(self, request):
        assignments = UserRole.objects.select_related("role")
        user_id = request.query_params.get("user_id")
        if user_id:
            try:
                assignments = assignments.filter(user_id=uuid.UUID(user_id))
            except ValueError:
                raise ValidationError({"user_id": ["Must be a valid UUID."]})
        return api_response(self._grouped(assignments))

    def post(self, request):
        serializer = UserRoleAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        assignments = assign_roles(data["user_id"], data["roles"], request, data.get("expires_at"))
        return api_response(
            {"user_id": str(data["user_id"]), "roles": UserRoleSerializer(assignments, many=True).data},
            status=status.HTTP_200_OK,
        )


class AuditLogPagination(LimitOffsetPagination):
    default_limit = 50
    max_limit = 200


class AuditLogViewSet(BaseReadOnlyViewSet):
    serializer_class = AuditLogEntrySerializer
    permission_classes = [PermissionGuard]
    required_permission = MANAGE_RBAC
    pagination_class = AuditLogPagination
    queryset = AuditLogEntry.objects.all()


__all__ = [
    "AuditLogViewSet",
    "ModuleViewSet",
    "PermissionViewSet",
    "RoleViewSet",
    "UserRoleAssignmentView",
]
