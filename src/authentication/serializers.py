"""Serializers for the current-identity payload."""

from rest_framework import serializers


class AuthUserSerializer(serializers.Serializer):
    """Read-only view of the hosted-auth identity attached by the middleware."""

    id = serializers.UUIDField(read_only=True)
    email = serializers.EmailField(read_only=True)
    session_id = serializers.CharField(read_only=True)
    expires_at = serializers.IntegerField(read_only=True)
    metadata = serializers.DictField(read_only=True)


class RoleSummarySerializer(serializers.Serializer):
    name = serializers.CharField(read_only=True)
    display_name = serializers.CharField(read_only=True)
    is_system = serializers.BooleanField(read_only=True)


class MeSerializer(serializers.Serializer):
    user = AuthUserSerializer(read_only=True)
    roles = RoleSummarySerializer(many=True, read_only=True)
    permissions = serializers.ListField(child=serializers.CharField(), read_only=True)
