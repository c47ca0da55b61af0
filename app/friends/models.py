"""
Friend request model.

A FriendRequest is a directed edge between two users with a status. Two users
are friends when an accepted request exists in either direction; there is no
separate friendship table.

Related files:
    - services.py: FriendService (send, respond, lookups)
"""

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.models import BaseModel


class FriendRequestStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"


class FriendRequest(BaseModel):
    """
    Directed friend request.

    Fields:
        from_user: Who asked
        to_user: Who must answer
        status: pending -> accepted | rejected (terminal)

    Constraints:
        - One request per ordered pair
        - from_user != to_user
    """

    from_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_friend_requests",
        help_text="User who sent the request",
    )
    to_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_friend_requests",
        help_text="User the request is addressed to",
    )
    status = models.CharField(
        max_length=10,
        choices=FriendRequestStatus.choices,
        default=FriendRequestStatus.PENDING,
        db_index=True,
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["from_user", "to_user"],
                name="unique_friend_request_per_pair",
            ),
            models.CheckConstraint(
                condition=~Q(from_user=models.F("to_user")),
                name="friend_request_not_self",
            ),
        ]
        indexes = [
            models.Index(fields=["to_user", "status"], name="friend_req_incoming_idx"),
        ]

    def __str__(self):
        return f"{self.from_user_id} -> {self.to_user_id} ({self.status})"

    @property
    def is_pending(self) -> bool:
        return self.status == FriendRequestStatus.PENDING
