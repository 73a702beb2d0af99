"""Case and contribution ViewSets protected by PermissionGuard."""

import logging

from django.db import transaction
from django.db.models import F
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.decorators import action

from access_control.permissions import PermissionGuard, load_guard_context
from access_control.services import AuditService
from core.exceptions import ConflictError
from core.response import BaseViewSet, api_response
from .models import Case, Contribution
from .serializers import CaseSerializer, ContributionRejectSerializer, ContributionSerializer

logger = logging.getLogger(__name__)

APPROVE_CONTRIBUTIONS = "approve:contributions"


class CaseViewSet(BaseViewSet):
    serializer_class = CaseSerializer
    permission_classes = [PermissionGuard]
    permission_map = {
        "list": "view:cases",
        "retrieve": "view:cases",
        "create": "create:cases",
        "update": "update:cases",
        "partial_update": "update:cases",
        "destroy": "delete:cases",
    }

    def get_queryset(self):
        """Optionally filter by ``?status=``."""
        queryset = Case.objects.all()
        case_status = self.request.query_params.get("status")
        if case_status:
            queryset = queryset.filter(status=case_status)
        return queryset

    def perform_create(self, serializer):
        """Record the caller as the case author."""
        serializer.save(created_by=self.request.user.id)


class ContributionViewSet(BaseViewSet):
    """Donors pledge contributions; reviewers approve or reject them.

    Callers holding ``approve:contributions`` see every contribution, everyone
    else only their own.
    """

    serializer_class = ContributionSerializer
    permission_classes = [PermissionGuard]
    http_method_names = ["get", "post", "head", "options"]
    permission_map = {
        "list": "view:contributions",
        "retrieve": "view:contributions",
        "create": "create:contributions",
        "approve": APPROVE_CONTRIBUTIONS,
        "reject": APPROVE_CONTRIBUTIONS,
    }

    def get_queryset(self):
        queryset = Contribution.objects.select_related("case")
        if load_guard_context(self.request).has(APPROVE_CONTRIBUTIONS):
            return queryset
        return queryset.filter(donor_id=self.request.user.id)

    def perform_create(self, serializer):
        serializer.save(donor_id=self.request.user.id, status=Contribution.Status.PENDING)

    def _review(self, pk, new_status: str, reason: str = "") -> Contribution:
        with transaction.atomic():
            contribution = get_object_or_404(Contribution.objects.select_for_update(), pk=pk)
            if contribution.status != Contribution.Status.PENDING:
                raise ConflictError(f"Contribution is already {contribution.status}.")

            contribution.status = new_status
            contribution.reviewed_by = self.request.user.id
            contribution.reviewed_at = timezone.now()
            contribution.rejection_reason = reason
            contribution.save(update_fields=["status", "reviewed_by", "reviewed_at", "rejection_reason"])

            if new_status == Contribution.Status.APPROVED:
                Case.objects.filter(pk=contribution.case_id).update(
                    current_amount=F("current_amount") + contribution.amount
                )

            AuditService.log_action(
                self.request,
                f"contribution.{new_status}",
                "contribution",
                contribution.pk,
                {"case": contribution.case_id, "amount": str(contribution.amount)},
            )
        return contribution

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        """Approve a pending contribution and add it to the case total."""
        contribution = self._review(pk, Contribution.Status.APPROVED)
        return api_response(ContributionSerializer(contribution).data)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        serializer = ContributionRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contribution = self._review(pk, Contribution.Status.REJECTED, serializer.validated_data["reason"])
        return api_response(ContributionSerializer(contribution).data)


__all__ = ["CaseViewSet", "ContributionViewSet"]
