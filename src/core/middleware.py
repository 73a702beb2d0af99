"""Request pipeline middleware: correlation ids, prelaunch gate, rate limiting, locale routing.

The hosted-auth session refresher lives in ``authentication.middleware``;
``settings.MIDDLEWARE`` fixes the order in which these run.
"""

import logging

from django.conf import settings
from django.utils import translation
from django.utils.deprecation import MiddlewareMixin

from core.http import HttpResponseTemporaryRedirect
from core.locales import fallback_locale, is_static_asset, locale_from_path, request_locale
from core.log_context import generate_correlation_id, set_correlation_id
from core.ratelimit import (
    RateLimiter,
    RateLimitUnavailable,
    match_rule,
    rate_limit_identity,
    rate_limited_response,
    should_rate_limit,
)

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
CORRELATION_META_KEY = "HTTP_X_CORRELATION_ID"


class CorrelationIdMiddleware(MiddlewareMixin):
    """Tag every request with a correlation id and echo it on the response."""

    def process_request(self, request):  # type: ignore[override]
        correlation_id = request.META.get(CORRELATION_META_KEY, "")
        if not correlation_id.strip():
            correlation_id = generate_correlation_id()

        # Downstream code reads the id from the header like any client-sent one.
        request.META[CORRELATION_META_KEY] = correlation_id
        request.correlation_id = correlation_id
        set_correlation_id(correlation_id)
        return None

    def process_response(self, request, response):  # type: ignore[override]
        correlation_id = getattr(request, "correlation_id", None)
        if correlation_id:
            response[CORRELATION_HEADER] = correlation_id
        set_correlation_id("")
        return response


class PrelaunchMiddleware(MiddlewareMixin):
    """Redirect everything except the landing page to it while PRELAUNCH is on."""

    CONTACT_PATH = "/api/contact"

    def process_request(self, request):  # type: ignore[override]
        if not getattr(settings, "PRELAUNCH", False):
            return None

        path = request.path_info
        locale = request_locale(request)
        if self._is_allowed(path, locale):
            return None

        logger.debug("Prelaunch gate redirecting %s", path)
        return HttpResponseTemporaryRedirect(f"/{locale}/landing")

    @classmethod
    def _is_allowed(cls, path: str, locale: str) -> bool:
        normalized = path.rstrip("/") or "/"
        if normalized in (f"/{locale}/landing", "/landing", cls.CONTACT_PATH):
            return True
        return is_static_asset(path)


class RateLimitMiddleware(MiddlewareMixin):
    """Reject API callers that exceed the limit of the first matching rule."""

    def process_request(self, request):  # type: ignore[override]
        request.rate_limit = None
        if not getattr(settings, "RATE_LIMIT_ENABLED", True):
            return None

        path = request.path_info
        if not should_rate_limit(path):
            return None

        rule = match_rule(path)
        if rule is None:
            return None

        identity = rate_limit_identity(request)
        try:
            decision = RateLimiter.hit(rule, identity)
        except RateLimitUnavailable:
            logger.warning("Rate limit store unavailable; allowing %s", path, exc_info=True)
            return None

        request.rate_limit = decision
        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded: rule=%s identity=%s count=%s", rule.name, identity, decision.count
            )
            return rate_limited_response(decision)
        return None

    def process_response(self, request, response):  # type: ignore[override]
        decision = getattr(request, "rate_limit", None)
        if decision is not None and decision.allowed:
            for header, value in decision.headers().items():
                response.setdefault(header, value)
        return response


class LocaleRouterMiddleware(MiddlewareMixin):
    """Enforce a supported locale prefix on every page route."""

    def process_request(self, request):  # type: ignore[override]
        path = request.path_info
        if self._is_exempt(path):
            return None

        locale = locale_from_path(path)
        if locale is None:
            target = f"/{fallback_locale(request)}{path if path != '/' else ''}"
            query = request.META.get("QUERY_STRING", "")
            if query:
                target = f"{target}?{query}"
            return HttpResponseTemporaryRedirect(target)

        translation.activate(locale)
        request.LANGUAGE_CODE = locale
        request.locale = locale
        return None

    def process_response(self, request, response):  # type: ignore[override]
        locale = getattr(request, "locale", None)
        if locale:
            response.setdefault("Content-Language", locale)
            translation.deactivate()
        return response

    @staticmethod
    def _is_exempt(path: str) -> bool:
        if path.startswith("/api/") or path == "/api" or is_static_asset(path):
            return True
        return "." in path.rsplit("/", 1)[-1]


__all__ = [
    "CorrelationIdMiddleware",
    "LocaleRouterMiddleware",
    "PrelaunchMiddleware",
    "RateLimitMiddleware",
]
