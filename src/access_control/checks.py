"""System checks for RBAC configuration."""

from django.core.checks import Error, register

from access_control.permissions import PermissionGuard


def guarded_views():
    # Import here to avoid circular imports at module load time.
    from access_control.views import (
        AuditLogViewSet,
        ModuleViewSet,
        PermissionViewSet,
        RoleViewSet,
        UserRoleAssignmentView,
    )
    from cases.views import CaseViewSet, ContributionViewSet

    return [
        AuditLogViewSet,
        CaseViewSet,
        ContributionViewSet,
        ModuleViewSet,
        PermissionViewSet,
        RoleViewSet,
        UserRoleAssignmentView,
    ]


def guard_classes(view_cls) -> list[type[PermissionGuard]]:
    return [
        cls
        for cls in getattr(view_cls, "permission_classes", [])
        if isinstance(cls, type) and issubclass(cls, PermissionGuard)
    ]


def check_views(views) -> list[Error]:
    """Return an error for every guarded view with no declared permission."""
    errors: list[Error] = []

    for view_cls in views:
        guards = guard_classes(view_cls)
        if not guards or any(getattr(guard, "required_name", None) for guard in guards):
            continue
        if getattr(view_cls, "required_permission", None) or getattr(view_cls, "permission_map", None):
            continue
        errors.append(
            Error(
                f"{view_cls.__name__} uses PermissionGuard but declares neither "
                f"required_permission nor permission_map.",
                hint="Guarded views without a declared permission deny every request.",
                obj=view_cls,
                id="access_control.E001",
            )
        )

    return errors


@register()
def guarded_views_declare_permission(app_configs, **kwargs):
    """Ensure views using PermissionGuard declare the permission they require.

    Only the known views in this project are inspected. New guarded views
    should be added to ``guarded_views``.
    """
    return check_views(guarded_views())
