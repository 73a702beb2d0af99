"""HTTP client for the hosted auth provider (GoTrue-compatible REST API)."""

import logging
from dataclasses import dataclass, field
from typing import Any

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class AuthProviderError(Exception):
    """Raised when the hosted auth provider is unreachable or rejects a call."""


@dataclass(frozen=True)
class ProviderSession:
    """Tokens returned by the provider after a successful refresh."""

    access_token: str
    refresh_token: str
    expires_in: int
    user: dict[str, Any] = field(default_factory=dict)


class HostedAuthClient:
    """Minimal wrapper over the provider's token endpoints."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self.api_key, "Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def refresh_session(self, refresh_token: str) -> ProviderSession:
        """Exchange a refresh token for a new access/refresh pair."""
        url = f"{self.base_url}/auth/v1/token?grant_type=refresh_token"
        try:
            response = requests.post(
                url,
                json={"refresh_token": refresh_token},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AuthProviderError("Auth provider unreachable during refresh") from exc

        if response.status_code != 200:
            raise AuthProviderError(f"Auth provider refused refresh (status {response.status_code})")

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthProviderError("Auth provider returned a malformed refresh payload") from exc

        if not isinstance(payload, dict):
            raise AuthProviderError("Auth provider returned a malformed refresh payload")

        access_token = payload.get("access_token")
        new_refresh = payload.get("refresh_token")
        if not access_token or not new_refresh:
            raise AuthProviderError("Auth provider refresh payload is missing tokens")

        try:
            expires_in = int(payload.get("expires_in") or 0)
        except (TypeError, ValueError) as exc:
            raise AuthProviderError("Auth provider returned an invalid expires_in") from exc

        user = payload.get("user")
        return ProviderSession(
            access_token=access_token,
            refresh_token=new_refresh,
            expires_in=expires_in,
            user=user if isinstance(user, dict) else {},
        )

    def sign_out(self, access_token: str) -> None:
        """Revoke the session at the provider."""
        url = f"{self.base_url}/auth/v1/logout"
        try:
            response = requests.post(url, headers=self._headers(access_token), timeout=self.timeout)
        except requests.RequestException as exc:
            raise AuthProviderError("Auth provider unreachable during sign-out") from exc
        if response.status_code >= 400:
            raise AuthProviderError(f"Auth provider refused sign-out (status {response.status_code})")


def get_auth_client() -> HostedAuthClient:
    """Build a client from settings; raises AuthProviderError when unconfigured."""

    base_url = getattr(settings, "SUPABASE_URL", "")
    api_key = getattr(settings, "SUPABASE_ANON_KEY", "")
    if not base_url or not api_key:
        raise AuthProviderError("SUPABASE_URL and SUPABASE_ANON_KEY must be configured")
    return HostedAuthClient(base_url, api_key, timeout=getattr(settings, "AUTH_PROVIDER_TIMEOUT", 5))


__all__ = ["AuthProviderError", "HostedAuthClient", "ProviderSession", "get_auth_client"]
