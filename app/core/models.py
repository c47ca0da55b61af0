"""
Abstract base models shared by the domain apps.

Base Classes:
    BaseModel: created_at / updated_at timestamps
    UUIDPrimaryKeyMixin: UUID primary key (used for user identity keys)

Usage:
    from core.models import BaseModel, UUIDPrimaryKeyMixin

    class FriendRequest(BaseModel):
        from_user = models.ForeignKey(...)

    class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
        ...

Note:
    Always list mixins before the concrete base class in inheritance.
"""

from __future__ import annotations

import uuid

from django.db import models


class BaseModel(models.Model):
    """
    Abstract model adding creation and modification timestamps.

    Fields:
        created_at: Set once when the row is inserted
        updated_at: Refreshed on every save

    Note:
        created_at is indexed because conversation history and pending
        friend requests are both read in creation order.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"


class UUIDPrimaryKeyMixin(models.Model):
    """
    UUID primary key instead of an auto-increment integer.

    Users are keyed by UUID so that the identity key used for room names
    (``user_<uuid>``) is opaque and does not leak account counts.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True
