"""Fixed-window request limits per route pattern, counted in Redis."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass

import redis
from django.conf import settings
from django.http import JsonResponse

from core.http import get_client_ip
from core.redis_client import get_redis_client


class RateLimitUnavailable(Exception):
    """Raised when the counter store cannot be reached."""


@dataclass(frozen=True)
class RateLimitRule:
    name: str
    pattern: re.Pattern
    requests: int
    window: int

    def matches(self, path: str) -> bool:
        return bool(self.pattern.search(path))


@dataclass(frozen=True)
class RateLimitDecision:
    rule: RateLimitRule
    count: int
    reset_in: int

    @property
    def allowed(self) -> bool:
        return self.count <= self.rule.requests

    @property
    def remaining(self) -> int:
        return max(0, self.rule.requests - self.count)

    @property
    def reset_at(self) -> int:
        return int(time.time()) + self.reset_in

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.rule.requests),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


def load_rules() -> list[RateLimitRule]:
    """Compile ``settings.RATE_LIMIT_RULES`` in declaration order."""
    return [
        RateLimitRule(
            name=rule["name"],
            pattern=re.compile(rule["pattern"]),
            requests=int(rule["requests"]),
            window=int(rule["window"]),
        )
        for rule in getattr(settings, "RATE_LIMIT_RULES", [])
    ]


def should_rate_limit(path: str) -> bool:
    """Only API routes are limited; file-like paths never are."""
    if not path.startswith("/api/") or path.startswith("/api/_next/"):
        return False
    return "." not in path


def match_rule(path: str, rules: list[RateLimitRule] | None = None) -> RateLimitRule | None:
    for rule in rules if rules is not None else load_rules():
        if rule.matches(path):
            return rule
    return None


def rate_limit_identity(request) -> str:
    """Authenticated callers are counted per user, everyone else per IP."""
    user = getattr(request, "user", None)
    if user is not None and getattr(user, "is_authenticated", False):
        return f"user:{user.id}"
    return f"ip:{get_client_ip(request)}"


class RateLimiter:
    """Count hits for a (rule, identity) pair inside the rule's window."""

    KEY_PREFIX = "ratelimit:"

    @classmethod
    def key_for(cls, rule: RateLimitRule, identity: str) -> str:
        return f"{cls.KEY_PREFIX}{rule.name}:{identity}"

    @classmethod
    def hit(cls, rule: RateLimitRule, identity: str) -> RateLimitDecision:
        client = get_redis_client()
        key = cls.key_for(rule, identity)
        try:
            count = int(client.incr(key))
            if count == 1:
                client.expire(key, rule.window)
            ttl = client.ttl(key)
            if ttl is None or ttl < 0:
                # Counter lost its expiry (e.g. crash between INCR and EXPIRE).
                client.expire(key, rule.window)
                ttl = rule.window
        except redis.RedisError as exc:
            raise RateLimitUnavailable("Redis unavailable while counting requests") from exc
        return RateLimitDecision(rule=rule, count=count, reset_in=int(ttl))


def rate_limited_response(decision: RateLimitDecision) -> JsonResponse:
    retry_after = max(1, decision.reset_in)
    minutes = max(1, decision.rule.window // 60)
    response = JsonResponse(
        {
            "data": None,
            "errors": [
                f"Rate limit exceeded. Maximum {decision.rule.requests} requests "
                f"per {minutes} minutes."
            ],
            "retry_after": retry_after,
        },
        status=429,
    )
    for header, value in decision.headers().items():
        response[header] = value
    response["Retry-After"] = str(retry_after)
    return response


__all__ = [
    "RateLimitDecision",
    "RateLimitRule",
    "RateLimitUnavailable",
    "RateLimiter",
    "load_rules",
    "match_rule",
    "rate_limit_identity",
    "rate_limited_response",
    "should_rate_limit",
]
