"""API error types and the exception handler that enforces the error envelope."""

import logging
from typing import Any

from django.conf import settings
from django.db import DatabaseError, IntegrityError
from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.exceptions import APIException, AuthenticationFailed, NotAuthenticated
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from authentication.services import BlocklistUnavailable

logger = logging.getLogger(__name__)


class ConflictError(APIException):
    """The operation would break a reference held elsewhere (e.g. role still assigned)."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "The resource is still referenced and cannot be changed."
    default_code = "conflict"


class SystemResourceProtected(APIException):
    """System-flagged roles, permissions and modules are read-only."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "System resources cannot be modified or deleted."
    default_code = "system_resource"


def _normalize_errors(payload: Any) -> list[Any]:
    """Convert DRF's response.data into a list for the envelope."""

    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and "detail" in payload:
        # Common DRF pattern: {"detail": "..."}
        return [payload["detail"]]
    return [payload]


def _envelope_error(message: str, status_code: int) -> Response:
    return Response({"data": None, "errors": [message]}, status=status_code)


def custom_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """Wrap DRF errors in `{ "data": null, "errors": [...] }` shape.

    - Uses DRF's default handler to produce the base response.
    - Maps ORM reference/uniqueness failures to 409 and outages to 503.
    - Normalizes auth/permission messages; DEBUG_AUTH_ERRORS exposes the
      underlying 401 reason.
    """

    # The session blocklist is security-critical: fail closed with 503.
    if isinstance(exc, BlocklistUnavailable):
        return _envelope_error(
            "Authentication service unavailable (blocklist).", status.HTTP_503_SERVICE_UNAVAILABLE
        )

    if isinstance(exc, ProtectedError):
        return _envelope_error(
            "The resource is still referenced and cannot be deleted.", status.HTTP_409_CONFLICT
        )

    if isinstance(exc, IntegrityError):
        logger.warning("Integrity error in %s: %s", context.get("view").__class__.__name__, exc)
        return _envelope_error(
            "The request conflicts with existing data.", status.HTTP_409_CONFLICT
        )

    # Other database errors are a temporary outage; keep the envelope instead
    # of Django's HTML 500 page.
    if isinstance(exc, DatabaseError):
        logger.error("Database error while handling request", exc_info=exc)
        return _envelope_error("Service temporarily unavailable.", status.HTTP_503_SERVICE_UNAVAILABLE)

    response = drf_exception_handler(exc, context)

    if response is None:
        return response

    # DRF downgrades NotAuthenticated to 403 when no WWW-Authenticate header
    # is available; unauthenticated callers always get 401 here.
    if isinstance(exc, (AuthenticationFailed, NotAuthenticated)):
        response.status_code = status.HTTP_401_UNAUTHORIZED

    # Successful responses are untouched here; BaseAPIView/BaseViewSet handle them.
    if response.status_code >= 400:
        base_errors = response.data

        if response.status_code == status.HTTP_401_UNAUTHORIZED:
            if getattr(settings, "DEBUG_AUTH_ERRORS", False):
                errors = _normalize_errors(base_errors)
            else:
                errors = ["Authentication credentials were not provided or the session is invalid."]
        elif response.status_code == status.HTTP_403_FORBIDDEN:
            errors = [
                "You do not have permission to perform this action on this resource."
            ]
        else:
            errors = _normalize_errors(base_errors)

        response.data = {"data": None, "errors": errors}

    return response


__all__ = ["ConflictError", "SystemResourceProtected", "custom_exception_handler"]
