"""
Tests for friends API views.

Testing Philosophy:
    Tests focus on observable HTTP behavior: status codes, body structure,
    database state and authentication enforcement.
"""

from rest_framework import status

from friends.models import FriendRequest, FriendRequestStatus
from friends.tests.factories import FriendRequestFactory, make_friends


# =============================================================================
# URL Constants
# =============================================================================


FRIENDS_URL = "/api/v1/friends/"
REQUESTS_URL = "/api/v1/friends/requests/"
PENDING_URL = "/api/v1/friends/requests/pending/"
RESPOND_URL = "/api/v1/friends/requests/{pk}/respond/"


class TestFriendListView:
    """GET /api/v1/friends/"""

    def test_lists_accepted_friends(self, client_for, ana, ben, cleo):
        make_friends(ana, ben)
        FriendRequestFactory(from_user=ana, to_user=cleo)

        response = client_for(ana).get(FRIENDS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [f["handle"] for f in response.data] == [ben.handle]

    def test_requires_authentication(self, db):
        from rest_framework.test import APIClient

        response = APIClient().get(FRIENDS_URL)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestFriendRequestCreateView:
    """POST /api/v1/friends/requests/"""

    def test_send_request(self, client_for, ana, ben):
        response = client_for(ana).post(REQUESTS_URL, {"handle": ben.handle}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["to_user"]["id"] == str(ben.id)
        assert response.data["status"] == "pending"

    def test_unknown_handle_404(self, client_for, ana):
        response = client_for(ana).post(REQUESTS_URL, {"handle": "ghost!1111"}, format="json")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "USER_NOT_FOUND"

    def test_duplicate_400(self, client_for, ana, ben):
        client = client_for(ana)
        client.post(REQUESTS_URL, {"handle": ben.handle}, format="json")
        response = client.post(REQUESTS_URL, {"handle": ben.handle}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "ALREADY_SENT"

    def test_missing_handle_400(self, client_for, ana):
        response = client_for(ana).post(REQUESTS_URL, {}, format="json")
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestPendingFriendRequestsView:
    """GET /api/v1/friends/requests/pending/"""

    def test_lists_incoming_pending(self, client_for, ana, ben):
        FriendRequestFactory(from_user=ben, to_user=ana)

        response = client_for(ana).get(PENDING_URL)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert response.data[0]["from_user"]["handle"] == ben.handle


class TestRespondFriendRequestView:
    """POST /api/v1/friends/requests/<id>/respond/"""

    def test_accept(self, client_for, ana, ben):
        request = FriendRequestFactory(from_user=ben, to_user=ana)

        response = client_for(ana).post(
            RESPOND_URL.format(pk=request.pk), {"action": "accepted"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "accepted"
        assert FriendRequest.objects.get(pk=request.pk).status == FriendRequestStatus.ACCEPTED

    def test_non_recipient_403(self, client_for, ana, ben, cleo):
        request = FriendRequestFactory(from_user=ben, to_user=ana)

        response = client_for(cleo).post(
            RESPOND_URL.format(pk=request.pk), {"action": "accepted"}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_RECIPIENT"

    def test_invalid_action_400(self, client_for, ana, ben):
        request = FriendRequestFactory(from_user=ben, to_user=ana)

        response = client_for(ana).post(
            RESPOND_URL.format(pk=request.pk), {"action": "ignore"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
