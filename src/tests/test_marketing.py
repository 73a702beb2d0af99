"""Contact form endpoint and localized marketing pages."""

from __future__ import annotations

from decimal import Decimal

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from cases.models import Case
from marketing.models import ContactMessage
from tests.utils import FakeRedisMixin


class ContactApiTests(FakeRedisMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.api_client = APIClient()

    def test_contact_message_is_stored(self):
        response = self.api_client.post(
            "/api/contact",
            {"name": "Layla", "email": "layla@example.com", "message": "I would like to volunteer."},
            format="json",
            HTTP_X_CORRELATION_ID="contact-trace",
        )

        self.assertEqual(response.status_code, 201)
        message = ContactMessage.objects.get(pk=response.json()["data"]["id"])
        self.assertEqual(message.email, "layla@example.com")
        self.assertEqual(message.locale, "en")
        self.assertEqual(message.correlation_id, "contact-trace")

    def test_locale_can_be_supplied(self):
        response = self.api_client.post(
            "/api/contact",
            {"name": "Layla", "email": "layla@example.com", "message": "مرحبا بكم", "locale": "ar"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(ContactMessage.objects.get().locale, "ar")

    @override_settings(LOCALE_DETECTION=True)
    def test_locale_detected_from_header_when_enabled(self):
        self.api_client.post(
            "/api/contact",
            {"name": "Layla", "email": "layla@example.com", "message": "Hello!"},
            format="json",
            HTTP_ACCEPT_LANGUAGE="ar",
        )
        self.assertEqual(ContactMessage.objects.get().locale, "ar")

    def test_invalid_payloads_are_rejected(self):
        invalid = [
            {"email": "layla@example.com", "message": "Hello"},
            {"name": "L", "email": "layla@example.com", "message": "Hello"},
            {"name": "Layla", "email": "not-an-email", "message": "Hello"},
            {"name": "Layla", "email": "layla@example.com", "message": "Hi"},
            {"name": "Layla", "email": "layla@example.com", "message": "x" * 5001},
            {"name": "Layla", "email": "layla@example.com", "message": "Hello", "locale": "fr"},
        ]
        for payload in invalid:
            response = self.api_client.post("/api/contact", payload, format="json")
            self.assertEqual(response.status_code, 400, payload)
            self.assertIsNone(response.json()["data"])
        self.assertFalse(ContactMessage.objects.exists())


class MarketingPageTests(FakeRedisMixin, TestCase):
    def test_home_page_renders_per_locale(self):
        english = self.client.get("/en")
        arabic = self.client.get("/ar/")

        self.assertEqual(english.status_code, 200)
        self.assertContains(english, 'dir="ltr"')
        self.assertEqual(arabic.status_code, 200)
        self.assertContains(arabic, 'dir="rtl"')

    def test_landing_shows_impact_figures(self):
        Case.objects.create(
            title="Clean water",
            target_amount=Decimal("1000"),
            current_amount=Decimal("250.50"),
            status=Case.Status.PUBLISHED,
        )
        Case.objects.create(title="Draft", target_amount=Decimal("10"), current_amount=Decimal("999"))

        response = self.client.get("/en/landing")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["case_count"], 1)
        self.assertEqual(response.context["total_raised"], Decimal("250.50"))
        self.assertContains(response, 'action="/api/contact"')

    def test_unknown_page_is_404_after_locale_prefix(self):
        self.assertEqual(self.client.get("/en/nowhere").status_code, 404)
