"""Resolve the hosted-auth session from cookies, refreshing it when close to expiry."""

import logging

from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from django.utils.deprecation import MiddlewareMixin
from rest_framework.exceptions import AuthenticationFailed

from .provider import AuthProviderError, get_auth_client
from .services import BlocklistUnavailable, SessionService

logger = logging.getLogger(__name__)


def set_session_cookies(response, access_token: str, refresh_token: str, expires_in: int) -> None:
    secure = not settings.DEBUG
    response.set_cookie(
        settings.AUTH_ACCESS_COOKIE,
        access_token,
        max_age=expires_in or None,
        httponly=True,
        secure=secure,
        samesite="Lax",
    )
    response.set_cookie(
        settings.AUTH_REFRESH_COOKIE,
        refresh_token,
        max_age=settings.AUTH_REFRESH_COOKIE_MAX_AGE,
        httponly=True,
        secure=secure,
        samesite="Lax",
    )


def clear_session_cookies(response) -> None:
    response.delete_cookie(settings.AUTH_ACCESS_COOKIE, samesite="Lax")
    response.delete_cookie(settings.AUTH_REFRESH_COOKIE, samesite="Lax")


class SessionRefreshMiddleware(MiddlewareMixin):
    """Attach an ``AuthUser`` (or ``AnonymousUser``) to every request.

    Any provider, token or blocklist failure leaves the request anonymous and
    is logged; authorization decisions belong to the permission guard.
    """

    def process_request(self, request):  # type: ignore[override]
        request.user = AnonymousUser()
        request.auth_claims = None
        request.refreshed_session = None

        access_token = request.COOKIES.get(settings.AUTH_ACCESS_COOKIE)
        refresh_token = request.COOKIES.get(settings.AUTH_REFRESH_COOKIE)
        if not access_token and not refresh_token:
            return None

        try:
            self._resolve(request, access_token, refresh_token)
        except (AuthenticationFailed, AuthProviderError, BlocklistUnavailable) as exc:
            logger.warning("Session refresh failed; continuing anonymous: %s", exc)
            request.user = AnonymousUser()
            request.auth_claims = None
            request.refreshed_session = None
        return None

    @staticmethod
    def _resolve(request, access_token: str | None, refresh_token: str | None) -> None:
        claims = None
        if access_token:
            try:
                claims = SessionService.decode_token(access_token)
            except AuthenticationFailed:
                if not refresh_token:
                    raise

        session = None
        if refresh_token and (claims is None or SessionService.needs_refresh(claims)):
            session = get_auth_client().refresh_session(refresh_token)
            claims = SessionService.decode_token(session.access_token)
            logger.info("Refreshed auth session for %s", claims.get("sub"))

        if claims is None:
            return

        user = SessionService.user_from_claims(claims)
        if SessionService.is_session_blocked(user.session_id):
            logger.warning("Rejected blocklisted session %s", user.session_id)
            return

        if session is not None:
            # Downstream code sees the refreshed tokens as if the client had sent them.
            request.COOKIES[settings.AUTH_ACCESS_COOKIE] = session.access_token
            request.COOKIES[settings.AUTH_REFRESH_COOKIE] = session.refresh_token
            request.refreshed_session = session

        request.user = user
        request.auth_claims = claims

    def process_response(self, request, response):  # type: ignore[override]
        if getattr(request, "session_cleared", False):
            return response

        session = getattr(request, "refreshed_session", None)
        if session is not None:
            set_session_cookies(response, session.access_token, session.refresh_token, session.expires_in)
        return response


__all__ = ["SessionRefreshMiddleware", "clear_session_cookies", "set_session_cookies"]
