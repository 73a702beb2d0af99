"""App configuration for authentication components."""

from django.apps import AppConfig


class AuthenticationConfig(AppConfig):
    """Authentication app holds the hosted-auth session middleware and endpoints."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "authentication"
