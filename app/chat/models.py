"""
Chat models.

Models:
    Message: One durable direct message between two users

Design Decisions:
    - Durable ids are auto-increment integers, so (created_at, id) is a total
      order consistent with arrival at the store
    - created_at is assigned by the server at persistence; client clocks are
      never trusted for ordering
    - is_read only ever goes false -> true; read_at records when
    - client_id keeps the sender's provisional id so every fan-out can be
      reconciled by exact id on the sending client
"""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxLengthValidator
from django.db import models

from chat.constants import MESSAGE_CONFIG
from core.models import BaseModel


class Message(BaseModel):
    """
    A direct message.

    Fields:
        sender: Author ("from" on the wire)
        recipient: Addressee ("to" on the wire)
        content: Trimmed, non-empty text
        is_read: Recipient has read it ("read" on the wire)
        read_at: When is_read flipped to true
        client_id: Provisional id supplied by the sender's client, if any
        created_at: Server timestamp ("timestamp" on the wire)
    """

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
        help_text="User who sent the message",
    )
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_messages",
        help_text="User the message is addressed to",
    )
    content = models.TextField(
        validators=[MaxLengthValidator(MESSAGE_CONFIG.MAX_CONTENT_LENGTH)],
        help_text="Message text",
    )
    is_read = models.BooleanField(
        default=False,
        help_text="Whether the recipient has read this message",
    )
    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the recipient marked this message read",
    )
    client_id = models.CharField(
        max_length=MESSAGE_CONFIG.MAX_CLIENT_ID_LENGTH,
        null=True,
        blank=True,
        help_text="Sender's provisional id, echoed back for reconciliation",
    )

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["sender", "recipient", "created_at"],
                name="message_pair_created_idx",
            ),
            models.Index(
                fields=["recipient", "is_read"],
                name="message_unread_idx",
            ),
            models.Index(
                fields=["sender", "client_id"],
                name="message_client_id_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Message {self.pk} from {self.sender_id} to {self.recipient_id}"

    def involves(self, user_id) -> bool:
        """Whether the user is either side of this message."""
        return str(user_id) in (str(self.sender_id), str(self.recipient_id))
