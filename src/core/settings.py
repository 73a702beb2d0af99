"""Django settings for the donation platform.

Environment-driven configuration for Postgres, Redis, the hosted auth
provider, and the request pipeline (prelaunch gate, rate limiting, locales).
"""
import os
from pathlib import Path
from urllib.parse import urlparse

from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent


def _get_env(name: str, default: str | None = None) -> str | None:
    """Read an environment variable with an optional fallback."""
    return os.environ.get(name, default)


def _get_flag(name: str, default: str = "False") -> bool:
    """Read a boolean flag; only a case-insensitive ``true`` enables it."""
    return (_get_env(name, default) or "").strip().lower() == "true"


def _parse_database_url(url: str) -> dict:
    """Parse a PostgreSQL-style DATABASE_URL into a Django DATABASES entry."""
    parsed = urlparse(url)
    return {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": parsed.path.lstrip("/"),
        "USER": parsed.username,
        "PASSWORD": parsed.password,
        "HOST": parsed.hostname,
        "PORT": parsed.port or "5432",
    }


SECRET_KEY = _get_env("SECRET_KEY", "dev-secret-key-change-me")
DEBUG = _get_flag("DEBUG", "True")
if not DEBUG and SECRET_KEY in ("change-me", "dev-secret-key-change-me"):
    raise ImproperlyConfigured("SECRET_KEY must be set in production")
ALLOWED_HOSTS = [
    h.strip()
    for h in _get_env("ALLOWED_HOSTS", "localhost,127.0.0.1,0.0.0.0").split(",")
    if h.strip()
]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    "rest_framework",
    "drf_spectacular",
    "core",
    "authentication",
    "access_control",
    "cases",
    "marketing",
    "scripts",
]

# Pipeline order: correlation tagger, prelaunch gate, session refresh,
# rate limiter, locale router.
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "core.middleware.CorrelationIdMiddleware",
    "core.middleware.PrelaunchMiddleware",
    "django.middleware.common.CommonMiddleware",
    "authentication.middleware.SessionRefreshMiddleware",
    "core.middleware.RateLimitMiddleware",
    "core.middleware.LocaleRouterMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "core.urls"
APPEND_SLASH = False

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.template.context_processors.i18n",
            ],
        },
    },
]

WSGI_APPLICATION = "core.wsgi.application"

DATABASE_URL = _get_env("DATABASE_URL")
if DATABASE_URL:
    DATABASES = {"default": _parse_database_url(DATABASE_URL)}
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": _get_env("POSTGRES_DB", "donation_platform"),
            "USER": _get_env("POSTGRES_USER", "donation_platform"),
            "PASSWORD": _get_env("POSTGRES_PASSWORD", "donation_platform"),
            "HOST": _get_env("POSTGRES_HOST", "localhost"),
            "PORT": _get_env("POSTGRES_PORT", "5433"),
        }
    }

LANGUAGE_CODE = "en"
LANGUAGES = [
    ("en", "English"),
    ("ar", "Arabic"),
]
LOCALE_DETECTION = _get_flag("LOCALE_DETECTION")
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

DEBUG_AUTH_ERRORS = _get_flag("DEBUG_AUTH_ERRORS")
REDIS_URL = _get_env("REDIS_URL", "redis://localhost:6380/0")

# Prelaunch mode: only the landing page, its assets and the contact API.
PRELAUNCH = _get_flag("PRELAUNCH")

# Hosted auth provider (Supabase-compatible GoTrue API).
SUPABASE_URL = (_get_env("SUPABASE_URL", "") or "").rstrip("/")
SUPABASE_ANON_KEY = _get_env("SUPABASE_ANON_KEY", "")
SUPABASE_JWT_SECRET = _get_env("SUPABASE_JWT_SECRET", "")
SUPABASE_JWT_AUDIENCE = _get_env("SUPABASE_JWT_AUDIENCE", "authenticated")
AUTH_PROVIDER_TIMEOUT = float(_get_env("AUTH_PROVIDER_TIMEOUT", "5"))
AUTH_ACCESS_COOKIE = "sb-access-token"
AUTH_REFRESH_COOKIE = "sb-refresh-token"
AUTH_REFRESH_COOKIE_MAX_AGE = 60 * 60 * 24 * 30
AUTH_REFRESH_MARGIN_SECONDS = 60

RATE_LIMIT_ENABLED = _get_flag("RATE_LIMIT_ENABLED", "True")
# First matching rule wins; paths matching no rule are not limited.
RATE_LIMIT_RULES = [
    {"name": "contact", "pattern": r"^/api/contact/?$", "requests": 10, "window": 15 * 60},
    {"name": "admin", "pattern": r"^/api/admin/", "requests": 1000, "window": 15 * 60},
    {"name": "debug", "pattern": r"^/api/(debug/|test-)", "requests": 50, "window": 15 * 60},
    {"name": "api", "pattern": r"^/api/", "requests": 100, "window": 15 * 60},
]

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": ["core.authentication.MiddlewareUserAuthentication"],
    "DEFAULT_PERMISSION_CLASSES": [],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "EXCEPTION_HANDLER": "core.exceptions.custom_exception_handler",
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Donation Platform API",
    "DESCRIPTION": (
        "OpenAPI schema for the donation platform: case and contribution "
        "management, and the database-backed RBAC admin console."
    ),
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "SERVE_PUBLIC": True,
    "APPEND_COMPONENTS": {
        "securitySchemes": {
            "sessionCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": AUTH_ACCESS_COOKIE,
            }
        }
    },
    "SECURITY": [{"sessionCookie": []}],
}

LOG_LEVEL = (_get_env("LOG_LEVEL", "INFO") or "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "correlation_id": {"()": "core.log_context.CorrelationIdFilter"},
    },
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "filters": ["correlation_id"],
            "formatter": "plain",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django.request": {"level": "ERROR", "propagate": True},
    },
}
