"""Session service: access-token verification and the session blocklist."""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import jwt
import redis
from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed

from core.redis_client import get_redis_client


class BlocklistUnavailable(Exception):
    """Raised when Redis blocklist cannot be checked (fail-closed)."""


class SessionExpired(AuthenticationFailed):
    """The access token is past its expiry and must be refreshed."""

    default_detail = "Session has expired"
    default_code = "session_expired"


@dataclass(frozen=True)
class AuthUser:
    """Identity resolved from a hosted-auth access token.

    Users live at the auth provider, not in the local database; this object
    quacks enough like ``django.contrib.auth`` users for DRF and templates.
    """

    id: uuid.UUID
    email: str
    session_id: str
    expires_at: int
    metadata: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    is_authenticated = True
    is_anonymous = False
    is_active = True

    @property
    def pk(self) -> uuid.UUID:
        return self.id

    def __str__(self) -> str:
        return self.email or str(self.id)


class SessionService:
    """Decode provider tokens and manage the Redis session blocklist."""

    ALGORITHM = "HS256"
    BLOCKLIST_PREFIX = "blocklist:session:"

    @classmethod
    def decode_token(cls, token: str, verify_exp: bool = True) -> dict[str, Any]:
        """Decode and validate an access token signed with the project secret."""

        secret = getattr(settings, "SUPABASE_JWT_SECRET", "")
        if not secret:
            raise AuthenticationFailed("Token verification is not configured")

        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[cls.ALGORITHM],
                audience=getattr(settings, "SUPABASE_JWT_AUDIENCE", "authenticated"),
                options={"verify_exp": verify_exp, "require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise SessionExpired() from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationFailed("Invalid token") from exc

    @staticmethod
    def user_from_claims(claims: dict[str, Any]) -> AuthUser:
        try:
            user_id = uuid.UUID(str(claims["sub"]))
        except (KeyError, ValueError) as exc:
            raise AuthenticationFailed("Token subject is not a valid user id") from exc

        return AuthUser(
            id=user_id,
            email=claims.get("email") or "",
            # Tokens without a session claim are tracked by subject.
            session_id=str(claims.get("session_id") or claims["sub"]),
            expires_at=int(claims["exp"]),
            metadata=dict(claims.get("user_metadata") or {}),
        )

    @staticmethod
    def needs_refresh(claims: dict[str, Any], now: float | None = None) -> bool:
        """True when the token expires within AUTH_REFRESH_MARGIN_SECONDS."""
        margin = int(getattr(settings, "AUTH_REFRESH_MARGIN_SECONDS", 60))
        now = time.time() if now is None else now
        return int(claims.get("exp", 0)) - now <= margin

    @classmethod
    def block_session(cls, session_id: str, exp: int) -> None:
        """Add a session id to the blocklist until its token expires."""

        client = get_redis_client()
        ttl_seconds = max(1, exp - int(time.time()))
        try:
            client.setex(f"{cls.BLOCKLIST_PREFIX}{session_id}", ttl_seconds, "1")
        except redis.RedisError as exc:
            raise BlocklistUnavailable("Redis unavailable while blocklisting") from exc

    @classmethod
    def is_session_blocked(cls, session_id: str) -> bool:
        client = get_redis_client()
        try:
            return client.get(f"{cls.BLOCKLIST_PREFIX}{session_id}") is not None
        except redis.RedisError as exc:
            raise BlocklistUnavailable("Redis unavailable while checking blocklist") from exc


__all__ = ["AuthUser", "BlocklistUnavailable", "SessionExpired", "SessionService"]
