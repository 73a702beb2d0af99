"""Session refresher, identity, and logout tests."""

from __future__ import annotations

import uuid
from unittest import mock

import requests
from django.conf import settings
from django.test import TestCase
from rest_framework.test import APIClient

from access_control.models import UserRole
from authentication.provider import AuthProviderError, HostedAuthClient
from authentication.services import BlocklistUnavailable, SessionService
from tests.utils import FakeRedisMixin, make_access_token, seed_rbac_basics, session_client


def provider_response(status_code: int = 200, payload: dict | None = None) -> mock.Mock:
    response = mock.Mock(status_code=status_code)
    response.json.return_value = payload if payload is not None else {}
    return response


class SessionRefreshTests(FakeRedisMixin, TestCase):
    """The middleware resolves, refreshes, or drops the session; it never errors."""

    @classmethod
    def setUpTestData(cls):
        cls.roles, _ = seed_rbac_basics()
        cls.user_id = uuid.uuid4()
        UserRole.objects.create(user_id=cls.user_id, role=cls.roles["donor"])

    def test_valid_cookie_resolves_identity(self):
        response = session_client(self.user_id, email="donor@example.com").get("/api/auth/me")

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["user"]["id"], str(self.user_id))
        self.assertEqual(data["user"]["email"], "donor@example.com")
        self.assertEqual([role["name"] for role in data["roles"]], ["donor"])
        self.assertIn("create:contributions", data["permissions"])
        self.assertNotIn("manage:rbac", data["permissions"])

    def test_no_cookies_is_anonymous(self):
        response = APIClient().get("/api/auth/me")
        self.assertEqual(response.status_code, 401)

    def test_tampered_token_is_anonymous(self):
        client = APIClient()
        client.cookies[settings.AUTH_ACCESS_COOKIE] = make_access_token(self.user_id, secret="x" * 40)
        self.assertEqual(client.get("/api/auth/me").status_code, 401)

    def test_wrong_audience_is_anonymous(self):
        client = APIClient()
        client.cookies[settings.AUTH_ACCESS_COOKIE] = make_access_token(self.user_id, audience="service_role")
        self.assertEqual(client.get("/api/auth/me").status_code, 401)

    @mock.patch("authentication.provider.requests.post")
    def test_expired_token_is_refreshed_and_cookies_rotated(self, post):
        new_access = make_access_token(self.user_id, session_id="session-2")
        post.return_value = provider_response(
            payload={"access_token": new_access, "refresh_token": "refresh-2", "expires_in": 3600}
        )
        client = session_client(self.user_id, refresh_token="refresh-1", expires_in=-30)

        response = client.get("/api/auth/me")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["user"]["session_id"], "session-2")
        url = post.call_args.args[0]
        self.assertEqual(url, f"{settings.SUPABASE_URL}/auth/v1/token?grant_type=refresh_token")
        self.assertEqual(post.call_args.kwargs["json"], {"refresh_token": "refresh-1"})
        self.assertEqual(post.call_args.kwargs["headers"]["apikey"], settings.SUPABASE_ANON_KEY)

        access_cookie = response.cookies[settings.AUTH_ACCESS_COOKIE]
        self.assertEqual(access_cookie.value, new_access)
        self.assertTrue(access_cookie["httponly"])
        self.assertEqual(access_cookie["samesite"], "Lax")
        self.assertEqual(response.cookies[settings.AUTH_REFRESH_COOKIE].value, "refresh-2")

    @mock.patch("authentication.provider.requests.post")
    def test_token_near_expiry_is_refreshed(self, post):
        post.return_value = provider_response(
            payload={
                "access_token": make_access_token(self.user_id),
                "refresh_token": "refresh-2",
                "expires_in": 3600,
            }
        )
        client = session_client(self.user_id, refresh_token="refresh-1", expires_in=10)

        response = client.get("/api/auth/me")

        self.assertEqual(response.status_code, 200)
        post.assert_called_once()

    @mock.patch("authentication.provider.requests.post")
    def test_fresh_token_is_not_refreshed(self, post):
        client = session_client(self.user_id, refresh_token="refresh-1")
        response = client.get("/api/auth/me")

        self.assertEqual(response.status_code, 200)
        post.assert_not_called()
        self.assertNotIn(settings.AUTH_ACCESS_COOKIE, response.cookies)

    @mock.patch("authentication.provider.requests.post")
    def test_provider_outage_fails_open_as_anonymous(self, post):
        """Refresh errors are logged and the request continues unauthenticated."""
        post.side_effect = requests.ConnectionError("down")
        client = session_client(self.user_id, refresh_token="refresh-1", expires_in=-30)

        with self.assertLogs("authentication.middleware", level="WARNING"):
            me = client.get("/api/auth/me")
        self.assertEqual(me.status_code, 401)

        # Public endpoints still work for the same caller.
        contact = client.post(
            "/api/contact",
            {"name": "Sam", "email": "sam@example.com", "message": "Hello there"},
            format="json",
        )
        self.assertEqual(contact.status_code, 201)

    @mock.patch("authentication.provider.requests.post")
    def test_provider_rejection_fails_open(self, post):
        post.return_value = provider_response(status_code=400, payload={"error": "invalid_grant"})
        client = session_client(self.user_id, refresh_token="revoked", expires_in=-30)
        self.assertEqual(client.get("/api/auth/me").status_code, 401)

    @mock.patch("authentication.provider.requests.post")
    def test_malformed_refresh_payload_fails_open(self, post):
        """Unusable refresh payloads leave the caller anonymous instead of erroring."""
        payloads = [
            ["unexpected"],
            {"access_token": "a", "refresh_token": "b", "expires_in": "soon"},
        ]
        for payload in payloads:
            post.return_value = provider_response(payload=payload)
            client = session_client(self.user_id, refresh_token="refresh-1", expires_in=-30)
            with self.assertLogs("authentication.middleware", level="WARNING"):
                response = client.get("/api/auth/me")
            self.assertEqual(response.status_code, 401, payload)

    def test_expired_token_without_refresh_is_anonymous(self):
        client = session_client(self.user_id, expires_in=-30)
        self.assertEqual(client.get("/api/auth/me").status_code, 401)

    def test_blocklisted_session_is_anonymous(self):
        SessionService.block_session("revoked-session", 2_000_000_000)
        client = session_client(self.user_id, session_id="revoked-session")
        self.assertEqual(client.get("/api/auth/me").status_code, 401)

    def test_blocklist_outage_fails_open_at_session_layer(self):
        """The session is dropped, and the guard then refuses protected routes."""
        self.fake_redis.available = False
        client = session_client(self.user_id)
        self.assertEqual(client.get("/api/auth/me").status_code, 401)
        self.assertEqual(client.get("/api/cases").status_code, 401)


class LogoutTests(FakeRedisMixin, TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user_id = uuid.uuid4()

    @mock.patch("authentication.provider.requests.post")
    def test_logout_blocklists_session_and_clears_cookies(self, post):
        post.return_value = provider_response(status_code=204)
        client = session_client(self.user_id, refresh_token="refresh-1", session_id="session-1")

        response = client.post("/api/auth/logout")

        self.assertEqual(response.status_code, 204)
        self.assertTrue(SessionService.is_session_blocked("session-1"))
        self.assertEqual(response.cookies[settings.AUTH_ACCESS_COOKIE].value, "")
        self.assertEqual(response.cookies[settings.AUTH_REFRESH_COOKIE].value, "")
        self.assertTrue(post.call_args.args[0].endswith("/auth/v1/logout"))

        # The same access token no longer authenticates.
        again = session_client(self.user_id, session_id="session-1")
        self.assertEqual(again.get("/api/auth/me").status_code, 401)

    @mock.patch("authentication.provider.requests.post")
    def test_provider_sign_out_failure_still_logs_out(self, post):
        post.side_effect = requests.Timeout("slow")
        client = session_client(self.user_id, session_id="session-1")

        response = client.post("/api/auth/logout")

        self.assertEqual(response.status_code, 204)
        self.assertTrue(SessionService.is_session_blocked("session-1"))

    def test_logout_requires_session(self):
        self.assertEqual(APIClient().post("/api/auth/logout").status_code, 401)

    def test_blocklist_outage_returns_503(self):
        client = session_client(self.user_id, session_id="session-1")
        # Session resolves while Redis is up, then the write fails.
        with mock.patch.object(SessionService, "block_session", side_effect=BlocklistUnavailable("down")):
            response = client.post("/api/auth/logout")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["data"], None)


class HostedAuthClientTests(TestCase):
    @mock.patch("authentication.provider.requests.post")
    def test_refresh_payload_missing_tokens_raises(self, post):
        post.return_value = provider_response(payload={"access_token": "only-access"})
        client = HostedAuthClient("https://auth.test.local/", "anon")
        with self.assertRaises(AuthProviderError):
            client.refresh_session("refresh-1")

    @mock.patch("authentication.provider.requests.post")
    def test_refresh_returns_session(self, post):
        post.return_value = provider_response(
            payload={"access_token": "a", "refresh_token": "r", "expires_in": 60, "user": {"id": "u"}}
        )
        session = HostedAuthClient("https://auth.test.local/", "anon", timeout=2).refresh_session("refresh-1")

        self.assertEqual((session.access_token, session.refresh_token, session.expires_in), ("a", "r", 60))
        self.assertEqual(post.call_args.kwargs["timeout"], 2)

    @mock.patch("authentication.provider.requests.post")
    def test_non_object_payload_raises(self, post):
        post.return_value = provider_response(payload=["unexpected"])
        with self.assertRaises(AuthProviderError):
            HostedAuthClient("https://auth.test.local", "anon").refresh_session("refresh-1")

    @mock.patch("authentication.provider.requests.post")
    def test_non_numeric_expires_in_raises(self, post):
        post.return_value = provider_response(
            payload={"access_token": "a", "refresh_token": "r", "expires_in": "soon"}
        )
        with self.assertRaises(AuthProviderError):
            HostedAuthClient("https://auth.test.local", "anon").refresh_session("refresh-1")
