"""Case and contribution endpoints behind the permission guard."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.test import TestCase

from access_control.models import AuditLogEntry, UserRole
from cases.models import Case, Contribution
from tests.utils import FakeRedisMixin, seed_rbac_basics, session_client


class CaseApiTests(FakeRedisMixin, TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.roles, _ = seed_rbac_basics()
        cls.moderator_id = uuid.uuid4()
        cls.donor_id = uuid.uuid4()
        UserRole.objects.create(user_id=cls.moderator_id, role=cls.roles["moderator"])
        UserRole.objects.create(user_id=cls.donor_id, role=cls.roles["donor"])
        cls.case = Case.objects.create(
            title="Winter blankets", target_amount=Decimal("500.00"), status=Case.Status.PUBLISHED
        )

    def test_donor_can_list_but_not_create(self):
        donor = session_client(self.donor_id)

        listing = donor.get("/api/cases")
        self.assertEqual(listing.status_code, 200)
        self.assertEqual([case["title"] for case in listing.json()["data"]], ["Winter blankets"])

        create = donor.post("/api/cases", {"title": "New", "target_amount": "10.00"}, format="json")
        self.assertEqual(create.status_code, 403)

    def test_moderator_creates_case_as_author(self):
        response = session_client(self.moderator_id).post(
            "/api/cases", {"title": "School fees", "target_amount": "1200.00"}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertEqual(data["created_by"], str(self.moderator_id))
        self.assertEqual(data["status"], "draft")
        self.assertEqual(data["current_amount"], "0.00")

    def test_current_amount_is_read_only(self):
        response = session_client(self.moderator_id).patch(
            f"/api/cases/{self.case.pk}", {"current_amount": "9999.00", "title": "Renamed"}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.case.refresh_from_db()
        self.assertEqual(self.case.current_amount, Decimal("0"))
        self.assertEqual(self.case.title, "Renamed")

    def test_delete_requires_delete_permission(self):
        """Moderators lack delete:cases."""
        response = session_client(self.moderator_id).delete(f"/api/cases/{self.case.pk}")
        self.assertEqual(response.status_code, 403)

    def test_status_filter(self):
        Case.objects.create(title="Draft case", target_amount=Decimal("10"))
        response = session_client(self.donor_id).get("/api/cases?status=draft")
        self.assertEqual([case["title"] for case in response.json()["data"]], ["Draft case"])


class ContributionApiTests(FakeRedisMixin, TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.roles, _ = seed_rbac_basics()
        cls.admin_id = uuid.uuid4()
        cls.moderator_id = uuid.uuid4()
        cls.donor_id = uuid.uuid4()
        cls.other_donor_id = uuid.uuid4()
        UserRole.objects.create(user_id=cls.admin_id, role=cls.roles["admin"])
        UserRole.objects.create(user_id=cls.moderator_id, role=cls.roles["moderator"])
        UserRole.objects.create(user_id=cls.donor_id, role=cls.roles["donor"])
        UserRole.objects.create(user_id=cls.other_donor_id, role=cls.roles["donor"])
        cls.case = Case.objects.create(
            title="Clean water", target_amount=Decimal("1000.00"), status=Case.Status.PUBLISHED
        )
        cls.draft = Case.objects.create(title="Not yet", target_amount=Decimal("100.00"))

    def donate(self, amount="25.00", case=None, user_id=None):
        return session_client(user_id or self.donor_id).post(
            "/api/contributions", {"case": (case or self.case).pk, "amount": amount}, format="json"
        )

    def test_donor_contribution_starts_pending(self):
        response = self.donate()
        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["donor_id"], str(self.donor_id))

    def test_contributions_only_for_published_cases(self):
        response = self.donate(case=self.draft)
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Contribution.objects.filter(case=self.draft).exists())

    def test_non_positive_amount_rejected(self):
        self.assertEqual(self.donate(amount="0").status_code, 400)

    def test_donors_see_only_their_own(self):
        self.donate()
        self.donate(user_id=self.other_donor_id)

        mine = session_client(self.donor_id).get("/api/contributions").json()["data"]
        self.assertEqual([row["donor_id"] for row in mine], [str(self.donor_id)])

        everyone = session_client(self.moderator_id).get("/api/contributions").json()["data"]
        self.assertEqual(len(everyone), 2)

    def test_approve_adds_amount_and_is_audited(self):
        contribution_id = self.donate("40.00").json()["data"]["id"]

        response = session_client(self.moderator_id).post(f"/api/contributions/{contribution_id}/approve")

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["status"], "approved")
        self.assertEqual(data["reviewed_by"], str(self.moderator_id))
        self.case.refresh_from_db()
        self.assertEqual(self.case.current_amount, Decimal("40.00"))
        entry = AuditLogEntry.objects.get(action="contribution.approved")
        self.assertEqual(entry.actor_id, self.moderator_id)

    def test_review_of_non_pending_conflicts(self):
        contribution_id = self.donate("40.00").json()["data"]["id"]
        moderator = session_client(self.moderator_id)
        moderator.post(f"/api/contributions/{contribution_id}/approve")

        again = moderator.post(f"/api/contributions/{contribution_id}/approve")
        reject = moderator.post(f"/api/contributions/{contribution_id}/reject", {"reason": "dup"}, format="json")

        self.assertEqual(again.status_code, 409)
        self.assertEqual(reject.status_code, 409)
        self.case.refresh_from_db()
        self.assertEqual(self.case.current_amount, Decimal("40.00"))

    def test_reject_records_reason(self):
        contribution_id = self.donate().json()["data"]["id"]
        response = session_client(self.moderator_id).post(
            f"/api/contributions/{contribution_id}/reject", {"reason": "Payment not received"}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["rejection_reason"], "Payment not received")
        self.case.refresh_from_db()
        self.assertEqual(self.case.current_amount, Decimal("0"))

    def test_donor_cannot_approve(self):
        contribution_id = self.donate().json()["data"]["id"]
        response = session_client(self.donor_id).post(f"/api/contributions/{contribution_id}/approve")
        self.assertEqual(response.status_code, 403)

    def test_contributions_cannot_be_edited_or_deleted(self):
        contribution_id = self.donate().json()["data"]["id"]
        admin = session_client(self.admin_id)
        self.assertIn(admin.delete(f"/api/contributions/{contribution_id}").status_code, (403, 405))
        patch = admin.patch(f"/api/contributions/{contribution_id}", {"amount": "1"}, format="json")
        self.assertIn(patch.status_code, (403, 405))
        contribution = Contribution.objects.get(pk=contribution_id)
        self.assertEqual(contribution.amount, Decimal("25.00"))

    def test_case_with_contributions_cannot_be_deleted(self):
        self.donate()
        response = session_client(self.admin_id).delete(f"/api/cases/{self.case.pk}")
        self.assertEqual(response.status_code, 409)
        self.assertTrue(Case.objects.filter(pk=self.case.pk).exists())
