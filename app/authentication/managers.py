"""
Custom user manager for email-based authentication.

Besides the usual create_user/create_superuser pair, the manager owns handle
generation: every user gets a directory handle "<username>!<NNNN>" with a
random four-digit suffix, retried until it does not collide.

Related files:
    - models.py: User model that uses this manager

Security:
    - Passwords are automatically hashed via set_password()
    - Email addresses are normalized (lowercase domain)
"""

import re
import secrets

from django.contrib.auth.models import BaseUserManager

from core.exceptions import ConflictError

HANDLE_SEPARATOR = "!"
HANDLE_SUFFIX_MIN = 1000
HANDLE_SUFFIX_MAX = 9999
HANDLE_MAX_ATTEMPTS = 50


class UserManager(BaseUserManager):
    """
    Custom manager for User model with email-based authentication.

    Usage:
        user = User.objects.create_user(
            email="ana@example.com",
            password="securepassword",
            username="ana",
        )

        admin = User.objects.create_superuser(
            email="admin@example.com",
            password="adminpassword",
            username="operator",
        )
    """

    def generate_handle(self, username):
        """
        Return an unused handle for ``username``.

        Raises:
            ConflictError: If every attempted suffix is already taken
        """
        span = HANDLE_SUFFIX_MAX - HANDLE_SUFFIX_MIN + 1
        for _ in range(HANDLE_MAX_ATTEMPTS):
            suffix = HANDLE_SUFFIX_MIN + secrets.randbelow(span)
            handle = f"{username}{HANDLE_SEPARATOR}{suffix}"
            if not self.filter(handle=handle).exists():
                return handle
        raise ConflictError(
            f"Could not allocate a handle for '{username}'",
            error_code="HANDLE_EXHAUSTED",
        )

    @staticmethod
    def username_from_email(email):
        """Derive a valid display name from the email local part."""
        local = re.sub(r"[^a-zA-Z0-9_-]", "", email.split("@")[0])[:30]
        return local if len(local) >= 3 else f"user{local}"

    def create_user(self, email, password=None, username=None, **extra_fields):
        """
        Create and save a regular user with the given email and password.

        Args:
            email: User's email address (required)
            password: User's password (unusable password if omitted)
            username: Display name (derived from email if omitted)
            **extra_fields: Additional fields to set on the user

        Returns:
            User: The created user instance, with its handle assigned

        Raises:
            ValueError: If email is not provided
        """
        if not email:
            raise ValueError("The Email field must be set")

        email = self.normalize_email(email)
        username = username or self.username_from_email(email)

        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)

        user = self.model(
            email=email,
            username=username,
            handle=self.generate_handle(username),
            **extra_fields,
        )

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, username=None, **extra_fields):
        """
        Create and save a superuser with the given email and password.

        Raises:
            ValueError: If is_staff or is_superuser is not True
        """
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, password, username, **extra_fields)
