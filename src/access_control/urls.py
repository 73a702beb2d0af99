"""Routing for RBAC admin endpoints (mounted under two prefixes in core.urls)."""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import AuditLogViewSet, ModuleViewSet, PermissionViewSet, RoleViewSet, UserRoleAssignmentView

router = SimpleRouter(trailing_slash=False)
router.register(r"modules", ModuleViewSet, basename="module")
router.register(r"permissions", PermissionViewSet, basename="permission")
router.register(r"roles", RoleViewSet, basename="role")
router.register(r"audit-log", AuditLogViewSet, basename="audit-log")

urlpatterns = [
    path("users", UserRoleAssignmentView.as_view(), name="user-roles"),
    path("", include(router.urls)),
]
