"""
Tests for FriendService.

Test Organization:
    - TestSendRequest: lookup by handle and every refusal path
    - TestRespond: recipient-only, pending-only transitions
    - TestLookups: friends_of, pending_for, are_friends
"""

import pytest

from friends.models import FriendRequest, FriendRequestStatus
from friends.services import FriendService
from friends.tests.factories import FriendRequestFactory, make_friends


# =============================================================================
# TestSendRequest
# =============================================================================


class TestSendRequest:
    """Tests for FriendService.send_request."""

    def test_creates_pending_request(self, ana, ben):
        result = FriendService.send_request(ana, ben.handle)

        assert result.success
        assert result.data.from_user == ana
        assert result.data.to_user == ben
        assert result.data.status == FriendRequestStatus.PENDING

    def test_unknown_handle(self, ana):
        result = FriendService.send_request(ana, "nobody!1234")

        assert not result.success
        assert result.error_code == "USER_NOT_FOUND"
        assert result.status_code == 404

    def test_blank_handle(self, ana):
        result = FriendService.send_request(ana, "  ")

        assert not result.success
        assert result.error_code == "VALIDATION_ERROR"
        assert "handle" in result.errors

    def test_cannot_befriend_self(self, ana):
        result = FriendService.send_request(ana, ana.handle)

        assert result.error_code == "CANNOT_FRIEND_SELF"
        assert not FriendRequest.objects.exists()

    def test_duplicate_send(self, ana, ben):
        """
        A second request in the same direction is refused.

        Why it matters: One request per ordered pair keeps the pending list
        free of duplicates.
        """
        FriendService.send_request(ana, ben.handle)
        result = FriendService.send_request(ana, ben.handle)

        assert result.error_code == "ALREADY_SENT"
        assert FriendRequest.objects.count() == 1

    def test_reverse_pending_request(self, ana, ben):
        FriendRequestFactory(from_user=ben, to_user=ana)
        result = FriendService.send_request(ana, ben.handle)

        assert result.error_code == "REQUEST_PENDING"

    def test_already_friends(self, ana, ben):
        make_friends(ben, ana)
        result = FriendService.send_request(ana, ben.handle)

        assert result.error_code == "ALREADY_FRIENDS"


# =============================================================================
# TestRespond
# =============================================================================


class TestRespond:
    """Tests for FriendService.respond."""

    def test_recipient_accepts(self, ana, ben):
        request = FriendRequestFactory(from_user=ana, to_user=ben)

        result = FriendService.respond(request.pk, ben, "accepted")

        assert result.success
        request.refresh_from_db()
        assert request.status == FriendRequestStatus.ACCEPTED
        assert FriendService.are_friends(ana.pk, ben.pk)

    def test_recipient_rejects(self, ana, ben):
        request = FriendRequestFactory(from_user=ana, to_user=ben)

        result = FriendService.respond(request.pk, ben, "rejected")

        assert result.success
        assert not FriendService.are_friends(ana.pk, ben.pk)

    def test_sender_cannot_respond(self, ana, ben):
        """
        Only the addressee decides.

        Why it matters: Otherwise anyone could accept their own request and
        gain messaging rights.
        """
        request = FriendRequestFactory(from_user=ana, to_user=ben)

        result = FriendService.respond(request.pk, ana, "accepted")

        assert result.error_code == "NOT_RECIPIENT"
        assert result.status_code == 403
        request.refresh_from_db()
        assert request.status == FriendRequestStatus.PENDING

    def test_unknown_request(self, ana):
        result = FriendService.respond(999999, ana, "accepted")

        assert result.error_code == "REQUEST_NOT_FOUND"
        assert result.status_code == 404

    def test_invalid_action(self, ana, ben):
        request = FriendRequestFactory(from_user=ana, to_user=ben)

        result = FriendService.respond(request.pk, ben, "maybe")

        assert result.error_code == "INVALID_ACTION"

    def test_terminal_states_are_final(self, ana, ben):
        request = FriendRequestFactory(from_user=ana, to_user=ben, status=FriendRequestStatus.REJECTED)

        result = FriendService.respond(request.pk, ben, "accepted")

        assert result.error_code == "ALREADY_RESPONDED"


# =============================================================================
# TestLookups
# =============================================================================


class TestLookups:
    """Tests for friends_of, pending_for and are_friends."""

    def test_are_friends_is_symmetric(self, ana, ben):
        make_friends(ana, ben)

        assert FriendService.are_friends(ana.pk, ben.pk)
        assert FriendService.are_friends(ben.pk, ana.pk)

    def test_pending_is_not_friendship(self, ana, ben):
        FriendRequestFactory(from_user=ana, to_user=ben)

        assert not FriendService.are_friends(ana.pk, ben.pk)

    def test_friends_of_returns_other_side(self, ana, ben, cleo):
        make_friends(ana, ben)
        make_friends(cleo, ana)
        FriendRequestFactory(from_user=ben, to_user=cleo)

        assert set(FriendService.friends_of(ana)) == {ben, cleo}
        assert FriendService.friends_of(ben) == [ana]

    def test_pending_for_lists_incoming_only(self, ana, ben, cleo):
        incoming = FriendRequestFactory(from_user=ben, to_user=ana)
        FriendRequestFactory(from_user=ana, to_user=cleo)
        FriendRequestFactory(from_user=cleo, to_user=ana, status=FriendRequestStatus.ACCEPTED)

        assert list(FriendService.pending_for(ana)) == [incoming]


@pytest.mark.django_db
def test_self_request_blocked_by_database(ana):
    """The check constraint backs up the service-level self check."""
    from django.db import IntegrityError

    with pytest.raises(IntegrityError):
        FriendRequest.objects.create(from_user=ana, to_user=ana)
