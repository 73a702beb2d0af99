"""Shared helpers for tests (fake Redis, session tokens, RBAC seeding)."""

from __future__ import annotations

import time
import uuid
from typing import Dict, Iterable, Tuple
from unittest import mock

import jwt
import redis
from django.conf import settings
from rest_framework.test import APIClient

from access_control.models import Permission, Role, RolePermission, UserRole
from scripts.management.commands.seed_rbac import seed_rbac


class FakeRedis:
    """Minimal Redis stub supporting the commands used by the session blocklist and rate limiter."""

    def __init__(self):
        self._store: Dict[str, str] = {}
        self._ttl: Dict[str, int] = {}
        self.available = True

    def _check(self) -> None:
        if not self.available:
            raise redis.ConnectionError("fake redis is down")

    def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        """Mimic Redis SETEX; the TTL is recorded but never elapses."""
        self._check()
        self._store[key] = value
        self._ttl[key] = int(ttl_seconds)

    def get(self, key: str):
        """Return stored value for key or None, matching Redis GET semantics."""
        self._check()
        return self._store.get(key)

    def incr(self, key: str) -> int:
        self._check()
        value = int(self._store.get(key, 0)) + 1
        self._store[key] = str(value)
        return value

    def expire(self, key: str, seconds: int) -> bool:
        self._check()
        if key not in self._store:
            return False
        self._ttl[key] = int(seconds)
        return True

    def ttl(self, key: str) -> int:
        self._check()
        if key not in self._store:
            return -2
        return self._ttl.get(key, -1)

    def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            removed += int(self._store.pop(key, None) is not None)
            self._ttl.pop(key, None)
        return removed

    def flushall(self) -> None:
        self._store.clear()
        self._ttl.clear()


class FakeRedisMixin:
    """Patch every Redis client lookup with one in-memory fake per test class."""

    fake_redis: FakeRedis

    @classmethod
    def setUpClass(cls):
        """Patch Redis clients to use the in-memory fake."""
        super().setUpClass()
        cls.fake_redis = FakeRedis()
        cls.patchers = [
            mock.patch("core.redis_client.get_redis_client", return_value=cls.fake_redis),
            mock.patch("authentication.services.get_redis_client", return_value=cls.fake_redis),
            mock.patch("core.ratelimit.get_redis_client", return_value=cls.fake_redis),
        ]
        for patcher in cls.patchers:
            patcher.start()

    @classmethod
    def tearDownClass(cls):
        """Stop Redis patches after the suite finishes."""
        for patcher in cls.patchers:
            patcher.stop()
        super().tearDownClass()

    def setUp(self):
        super().setUp()
        self.fake_redis.flushall()
        self.fake_redis.available = True


def make_access_token(
    user_id: uuid.UUID | str,
    email: str = "user@example.com",
    session_id: str | None = None,
    expires_in: int = 3600,
    secret: str | None = None,
    audience: str = "authenticated",
) -> str:
    """Mint an access token shaped like the hosted provider's."""
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "email": email,
        "aud": audience,
        "role": "authenticated",
        "session_id": session_id or str(uuid.uuid4()),
        "iat": now,
        "exp": now + expires_in,
        "user_metadata": {"full_name": email.split("@")[0]},
    }
    return jwt.encode(payload, secret or settings.SUPABASE_JWT_SECRET, algorithm="HS256")


def session_client(user_id: uuid.UUID | str, refresh_token: str | None = None, **token_kwargs) -> APIClient:
    """APIClient carrying session cookies for ``user_id``."""
    client = APIClient()
    client.cookies[settings.AUTH_ACCESS_COOKIE] = make_access_token(user_id, **token_kwargs)
    if refresh_token:
        client.cookies[settings.AUTH_REFRESH_COOKIE] = refresh_token
    return client


def seed_rbac_basics() -> Tuple[dict, dict]:
    """Create the seeded modules, permissions, roles and grants.

    Delegates to the same helpers used by the ``seed_rbac`` management command
    to keep RBAC setup logic in a single place.
    """
    return seed_rbac()


def grant(user_id: uuid.UUID, *permission_names: str, role_name: str | None = None) -> Role:
    """Give ``user_id`` a fresh custom role holding exactly ``permission_names``."""
    role = Role.objects.create(
        name=role_name or f"role-{uuid.uuid4().hex[:8]}",
        display_name="Test role",
    )
    for name in permission_names:
        permission, _ = Permission.objects.get_or_create(name=name, defaults={"display_name": name})
        RolePermission.objects.create(role=role, permission=permission)
    UserRole.objects.create(user_id=user_id, role=role)
    return role


def assign(user_id: uuid.UUID, roles: Iterable[Role]) -> None:
    for role in roles:
        UserRole.objects.create(user_id=user_id, role=role)
