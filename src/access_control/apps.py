"""Django app for roles, permissions, assignments and the audit trail."""

from django.apps import AppConfig


class AccessControlConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "access_control"
    verbose_name = "Access control"

    def ready(self) -> None:
        """Register the guarded-view system check."""
        from . import checks  # noqa: F401
