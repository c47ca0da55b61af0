"""
Serializers for authentication models.

This module provides DRF serializers for:
- User model (the current user, with email)
- Public user representation (what other users see: no email)
- Registration (create user)
- Login (JWT pair plus the user)

Related files:
    - models.py: User model
    - views.py: Views that use these serializers
    - services.py: UserDirectory.register

Security:
    - Password fields are write-only
    - Email is only exposed to its owner
"""

from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from authentication.models import (
    RESERVED_USERNAMES,
    USERNAME_PATTERN,
    User,
)


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for the authenticated user's own record.

    Used by /api/v1/auth/me/, registration, and login responses.
    """

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "username",
            "handle",
            "date_joined",
        ]
        read_only_fields = fields


class PublicUserSerializer(serializers.ModelSerializer):
    """Serializer for other users (search results, friend lists)."""

    class Meta:
        model = User
        fields = ["id", "username", "handle"]
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    """
    Serializer for user registration.

    Validates input only; the account is created by UserDirectory.register
    which also assigns the handle.
    """

    email = serializers.EmailField(required=True)
    username = serializers.CharField(
        min_length=3,
        max_length=30,
        help_text="Display name (3-30 chars, letters, digits, _ and -).",
    )
    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Password must be at least 8 characters.",
    )

    def validate_email(self, value):
        """Validate that email is not already in use."""
        email = value.lower().strip()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return email

    def validate_username(self, value):
        value = value.strip()
        if not USERNAME_PATTERN.match(value):
            raise serializers.ValidationError(
                "Username may only contain letters, numbers, underscores, and hyphens."
            )
        if value.lower() in RESERVED_USERNAMES:
            raise serializers.ValidationError(
                f"The username '{value}' is reserved and cannot be used."
            )
        return value

    def validate_password(self, value):
        validate_password(value)
        return value


class LoginSerializer(TokenObtainPairSerializer):
    """
    Email/password login returning the JWT pair and the user.

    Response:
        {"access": "...", "refresh": "...", "user": {...}}
    """

    def validate(self, attrs):
        data = super().validate(attrs)
        data["user"] = UserSerializer(self.user).data
        return data


class LoginResponseSerializer(serializers.Serializer):
    """Schema-only serializer documenting the login response."""

    access = serializers.CharField()
    refresh = serializers.CharField()
    user = UserSerializer()
