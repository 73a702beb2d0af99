"""Validation for the public contact form."""

from rest_framework import serializers

from core.locales import supported_locales
from .models import ContactMessage


class ContactMessageSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=2, max_length=120)
    email = serializers.EmailField(max_length=255)
    message = serializers.CharField(min_length=3, max_length=5000)
    locale = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = ContactMessage
        fields = ["id", "name", "email", "message", "locale", "created_at"]
        read_only_fields = ["id", "created_at"]

    @staticmethod
    def validate_locale(value: str) -> str:
        if value and value not in supported_locales():
            raise serializers.ValidationError(f"Unsupported locale '{value}'.")
        return value


__all__ = ["ContactMessageSerializer"]
