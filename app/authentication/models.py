"""
Authentication models.

This module defines the User directory consumed by the chat core:
- User: Custom user model with email-based authentication, a display
  username and a directory handle ("<username>!<4 digits>")

The chat core only ever sees a user's ``id`` (UUID). Rooms, messages and
friend edges are keyed by it; the handle is what people type to find each
other.

Related files:
    - managers.py: Custom user manager (email login, handle generation)
    - services.py: UserDirectory lookups used by the other apps

Security:
    - User passwords hashed with Django's configured hashers
"""

import re

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models

from authentication.managers import UserManager
from core.models import UUIDPrimaryKeyMixin

# Reserved usernames that cannot be used
RESERVED_USERNAMES = frozenset([
    "admin", "administrator", "root", "system", "api", "www",
    "support", "help", "security", "account", "login", "logout",
    "register", "signup", "signin", "auth", "user", "users",
    "null", "undefined", "anonymous", "guest", "staff", "mod",
    "moderator", "bot", "chat", "friends",
])

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{3,30}$")


def validate_username_not_reserved(value):
    """Validate that username is not in the reserved list."""
    if value.lower() in RESERVED_USERNAMES:
        raise ValidationError(
            f"The username '{value}' is reserved and cannot be used."
        )


def validate_username_format(value):
    """Validate username format: 3-30 chars, alphanumeric + _ + -."""
    if not USERNAME_PATTERN.match(value):
        raise ValidationError(
            "Username must be 3-30 characters and contain only "
            "letters, numbers, underscores, and hyphens."
        )


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the login identifier.

    Fields:
        id: UUID identity key (room name is user_<id>)
        email: Login identifier, unique
        username: Display name, not unique on its own
        handle: Directory code "<username>!<NNNN>", unique, assigned at creation
        is_active: Inactive users cannot send or receive messages
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(
            email="ana@example.com",
            password="securepassword",
            username="ana",
        )
        user.handle  # "ana!4821"
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (login identifier)",
    )
    username = models.CharField(
        max_length=30,
        validators=[validate_username_format, validate_username_not_reserved],
        help_text="Display name (3-30 chars, alphanumeric + _ + -)",
    )
    handle = models.CharField(
        max_length=40,
        unique=True,
        editable=False,
        help_text="Directory handle used to find this user, e.g. ana!4821",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.handle or self.email

    def get_full_name(self):
        return self.username

    def get_short_name(self):
        return self.username

    @property
    def room_name(self) -> str:
        """Channel layer group that every live connection of this user joins."""
        return f"user_{self.pk}"
