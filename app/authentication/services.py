"""
Authentication services.

This module provides the UserDirectory, the seam through which the friends
and chat apps resolve identity keys and handles to users. Nothing outside
this app queries the User table directly for lookups.

Related files:
    - models.py: User
    - managers.py: Handle generation on creation
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError

from authentication.models import User
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.services import BaseService

if TYPE_CHECKING:
    from uuid import UUID

logger = logging.getLogger(__name__)


class UserDirectory(BaseService):
    """
    Directory lookups and registration.

    Usage:
        from authentication.services import UserDirectory

        user = UserDirectory.find_by_handle("ana!4821")
        sender = UserDirectory.get_active(sender_id)
    """

    @staticmethod
    def get_active(user_id: UUID | str) -> User | None:
        """
        Return the active user for an identity key, or None.

        Malformed keys (not a UUID) resolve to None rather than raising.
        """
        try:
            return User.objects.get(pk=user_id, is_active=True)
        except (User.DoesNotExist, DjangoValidationError, ValueError):
            return None

    @staticmethod
    def find_by_handle(handle: str) -> User:
        """
        Return the active user owning ``handle``.

        Raises:
            NotFoundError: If no active user has this handle
        """
        try:
            return User.objects.get(handle=handle.strip(), is_active=True)
        except User.DoesNotExist:
            raise NotFoundError(
                f"No user with handle '{handle}'",
                error_code="USER_NOT_FOUND",
            )

    @classmethod
    def register(cls, email: str, password: str, username: str) -> User:
        """
        Create a user account and assign its handle.

        Raises:
            ConflictError: If the email is already registered
            ValidationError: If the username is not acceptable
        """
        email = email.lower().strip()
        if User.objects.filter(email__iexact=email).exists():
            raise ConflictError(
                "A user with this email already exists.",
                error_code="EMAIL_TAKEN",
            )

        field = User._meta.get_field("username")
        try:
            field.run_validators(username)
        except DjangoValidationError as e:
            raise ValidationError(
                " ".join(e.messages),
                error_code="INVALID_USERNAME",
            )

        user = User.objects.create_user(email=email, password=password, username=username)
        cls.get_logger().info("Registered user %s as %s", user.pk, user.handle)
        return user
