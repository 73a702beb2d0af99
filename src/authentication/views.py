"""Authentication endpoints: current identity and logout."""

import logging
from typing import Any

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import NotAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from access_control.services import get_effective_permissions, get_user_roles
from core.response import BaseAPIView, api_response
from .middleware import clear_session_cookies
from .provider import AuthProviderError, get_auth_client
from .serializers import MeSerializer
from .services import SessionService

logger = logging.getLogger(__name__)


class MeView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def get(self, request):
        """Return the caller's identity, roles, and effective permissions."""
        if not request.user.is_authenticated:
            raise NotAuthenticated()

        user = request.user
        payload = {
            "user": user,
            "roles": get_user_roles(user.id),
            "permissions": sorted(get_effective_permissions(user.id)),
        }
        return api_response(MeSerializer(payload).data)


class LogoutView(APIView):
    """End the current session: provider sign-out, blocklist, clear cookies."""

    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def post(self, request):
        """Blocklist the session id and return 204 No Content."""
        if not request.user.is_authenticated:
            raise NotAuthenticated()

        user = request.user
        SessionService.block_session(user.session_id, user.expires_at)

        access_token = _get_access_token(request)
        if access_token:
            try:
                get_auth_client().sign_out(access_token)
            except AuthProviderError as exc:
                # The local blocklist already rejects the session.
                logger.warning("Provider sign-out failed for %s: %s", user.id, exc)

        response = Response(status=status.HTTP_204_NO_CONTENT)
        clear_session_cookies(response)
        request._request.session_cleared = True
        return response


def _get_access_token(request) -> str | None:
    """Access token as forwarded by the session middleware (refreshed if it was)."""
    return request.COOKIES.get(settings.AUTH_ACCESS_COOKIE) or None
