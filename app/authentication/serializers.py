"""
Serializers for authentication models.

Security:
    - Sensitive fields are read-only
    - The gateway customer reference is never exposed
"""

from rest_framework import serializers

from authentication.models import User


class UserSerializer(serializers.ModelSerializer):
    """Read-only representation of the current user."""

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "role",
            "date_joined",
        ]
        read_only_fields = fields
