"""Serializers for case and contribution endpoints."""

from rest_framework import serializers

from .models import Case, Contribution


class CaseSerializer(serializers.ModelSerializer):
    class Meta:
        """Funding progress and authorship are maintained server-side."""
        model = Case
        fields = [
            "id",
            "title",
            "description",
            "target_amount",
            "current_amount",
            "status",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "current_amount", "created_by", "created_at", "updated_at"]


class ContributionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Contribution
        fields = [
            "id",
            "case",
            "donor_id",
            "amount",
            "status",
            "reviewed_by",
            "reviewed_at",
            "rejection_reason",
            "created_at",
        ]
        read_only_fields = [
            "id",
            "donor_id",
            "status",
            "reviewed_by",
            "reviewed_at",
            "rejection_reason",
            "created_at",
        ]

    @staticmethod
    def validate_case(value: Case) -> Case:
        if value.status != Case.Status.PUBLISHED:
            raise serializers.ValidationError("Contributions are only accepted for published cases.")
        return value


class ContributionRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


__all__ = ["CaseSerializer", "ContributionRejectSerializer", "ContributionSerializer"]
