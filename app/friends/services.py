"""
Friend relationship services.

FriendService owns the friend-request lifecycle and answers the friendship
question the delivery router asks before persisting a message.

Request lifecycle:
    pending -> accepted
    pending -> rejected

Only the addressee of a pending request may respond. Accepted and rejected
are terminal; a rejected pair cannot re-request in the same direction.

Usage:
    from friends.services import FriendService

    result = FriendService.send_request(request.user, "ben!1234")
    if result:
        friend_request = result.data
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import IntegrityError
from django.db.models import Q

from authentication.services import UserDirectory
from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult
from friends.models import FriendRequest, FriendRequestStatus

if TYPE_CHECKING:
    from uuid import UUID

    from authentication.models import User

RESPONSE_ACTIONS = (FriendRequestStatus.ACCEPTED, FriendRequestStatus.REJECTED)


class FriendService(BaseService):
    """Friend requests and friendship lookups."""

    @classmethod
    def send_request(cls, from_user: User, handle: str) -> ServiceResult[FriendRequest]:
        """
        Send a friend request to the owner of ``handle``.

        Failures:
            USER_NOT_FOUND (404), CANNOT_FRIEND_SELF, ALREADY_FRIENDS,
            ALREADY_SENT, REQUEST_PENDING (the other user already asked)
        """
        validation = cls.validate_required(handle=handle)
        if validation:
            return validation

        try:
            to_user = UserDirectory.find_by_handle(handle)
        except BaseApplicationError as e:
            return ServiceResult.from_exception(e)

        if to_user.pk == from_user.pk:
            return ServiceResult.failure(
                "You cannot send a friend request to yourself",
                error_code="CANNOT_FRIEND_SELF",
            )
        if cls.are_friends(from_user.pk, to_user.pk):
            return ServiceResult.failure("Already friends", error_code="ALREADY_FRIENDS")
        if FriendRequest.objects.filter(from_user=from_user, to_user=to_user).exists():
            return ServiceResult.failure("Already sent", error_code="ALREADY_SENT")
        if FriendRequest.objects.filter(
            from_user=to_user, to_user=from_user, status=FriendRequestStatus.PENDING
        ).exists():
            return ServiceResult.failure(
                "This user already sent you a request; respond to it instead",
                error_code="REQUEST_PENDING",
            )

        try:
            with cls.atomic():
                friend_request = FriendRequest.objects.create(
                    from_user=from_user, to_user=to_user
                )
        except IntegrityError:
            # Concurrent duplicate send lost the race on the unique constraint
            return ServiceResult.failure("Already sent", error_code="ALREADY_SENT")

        cls.get_logger().info(
            "Friend request %s sent from %s to %s",
            friend_request.pk,
            from_user.pk,
            to_user.pk,
        )
        return ServiceResult.success(friend_request)

    @classmethod
    def respond(cls, request_id: int, user: User, action: str) -> ServiceResult[FriendRequest]:
        """
        Accept or reject a pending request addressed to ``user``.

        Failures:
            INVALID_ACTION, REQUEST_NOT_FOUND (404), NOT_RECIPIENT (403),
            ALREADY_RESPONDED
        """
        if action not in RESPONSE_ACTIONS:
            return ServiceResult.failure(
                f"Action must be one of: {', '.join(RESPONSE_ACTIONS)}",
                error_code="INVALID_ACTION",
            )

        with cls.atomic():
            try:
                friend_request = FriendRequest.objects.select_for_update().get(pk=request_id)
            except FriendRequest.DoesNotExist:
                return ServiceResult.failure(
                    "Request not found",
                    error_code="REQUEST_NOT_FOUND",
                    status_code=404,
                )

            if friend_request.to_user_id != user.pk:
                return ServiceResult.failure(
                    "Only the recipient can respond to a friend request",
                    error_code="NOT_RECIPIENT",
                    status_code=403,
                )
            if not friend_request.is_pending:
                return ServiceResult.failure(
                    f"Request already {friend_request.status}",
                    error_code="ALREADY_RESPONDED",
                )

            friend_request.status = action
            friend_request.save(update_fields=["status", "updated_at"])

        cls.get_logger().info("Friend request %s %s by %s", request_id, action, user.pk)
        return ServiceResult.success(friend_request)

    @staticmethod
    def pending_for(user: User):
        """Incoming pending requests, newest first."""
        return (
            FriendRequest.objects.filter(to_user=user, status=FriendRequestStatus.PENDING)
            .select_related("from_user")
            .order_by("-created_at")
        )

    @staticmethod
    def friends_of(user: User) -> list[User]:
        """The other side of every accepted request involving ``user``."""
        accepted = FriendRequest.objects.filter(
            Q(from_user=user) | Q(to_user=user),
            status=FriendRequestStatus.ACCEPTED,
        ).select_related("from_user", "to_user")
        return [
            edge.to_user if edge.from_user_id == user.pk else edge.from_user
            for edge in accepted
        ]

    @staticmethod
    def are_friends(user_a: UUID | str, user_b: UUID | str) -> bool:
        """True iff an accepted request exists between the two users, either direction."""
        return FriendRequest.objects.filter(
            Q(from_user_id=user_a, to_user_id=user_b) | Q(from_user_id=user_b, to_user_id=user_a),
            status=FriendRequestStatus.ACCEPTED,
        ).exists()
