"""
Tests for chat API views.

Testing Philosophy:
    Tests focus on observable HTTP behavior: status codes, body structure,
    database state and the pushes the REST operations cause on the channel
    layer. Send and read run through database_sync_to_async, so the module
    uses transactional database access.
"""

import asyncio
import uuid

import pytest
from asgiref.sync import async_to_sync
from rest_framework import status
from rest_framework.test import APIClient

from chat.models import Message
from chat.services import PresenceRegistry
from chat.tests.factories import MessageFactory

pytestmark = pytest.mark.django_db(transaction=True)


# =============================================================================
# URL Constants
# =============================================================================


MESSAGES_URL = "/api/v1/chat/messages/"
UNREAD_URL = "/api/v1/chat/messages/unread/"
HISTORY_URL = "/api/v1/chat/messages/with/{user_id}/"
READ_URL = "/api/v1/chat/messages/{pk}/read/"
PRESENCE_URL = "/api/v1/chat/presence/{user_id}/"


def join_channel(channel_layer, user):
    """Register a live connection for user and return its channel name."""

    async def _join():
        channel = await channel_layer.new_channel()
        await PresenceRegistry(channel_layer=channel_layer).join(str(user.pk), channel)
        return channel

    return async_to_sync(_join)()


def next_event(channel_layer, channel):
    async def _receive():
        try:
            return await asyncio.wait_for(channel_layer.receive(channel), timeout=0.2)
        except asyncio.TimeoutError:
            return None

    return async_to_sync(_receive)()


# =============================================================================
# Messages
# =============================================================================


class TestMessageCreateView:
    """POST /api/v1/chat/messages/"""

    def test_send_persists_and_pushes(self, client_for, channel_layer, friends, ana, ben):
        ben_channel = join_channel(channel_layer, ben)

        response = client_for(ana).post(
            MESSAGES_URL,
            {"to": str(ben.pk), "content": "hi", "client_id": "tmp-9"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["from"] == str(ana.pk)
        assert response.data["client_id"] == "tmp-9"
        assert Message.objects.filter(pk=response.data["id"]).exists()

        event = next_event(channel_layer, ben_channel)
        assert event["event"] == "receiveMessage"
        assert event["data"]["id"] == response.data["id"]

    def test_not_friends_403(self, client_for, ana, cleo):
        response = client_for(ana).post(MESSAGES_URL, {"to": str(cleo.pk), "content": "hi"}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_FRIENDS"
        assert not Message.objects.exists()

    def test_blank_content_400(self, client_for, friends, ana, ben):
        response = client_for(ana).post(MESSAGES_URL, {"to": str(ben.pk), "content": "  "}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "EMPTY_CONTENT"

    def test_invalid_recipient_400(self, client_for, ana):
        response = client_for(ana).post(MESSAGES_URL, {"to": "someone", "content": "hi"}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_requires_authentication(self, ben):
        response = APIClient().post(MESSAGES_URL, {"to": str(ben.pk), "content": "hi"}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestConversationHistoryView:
    """GET /api/v1/chat/messages/with/{user_id}/"""

    def test_returns_both_directions_in_order(self, client_for, ana, ben, cleo):
        first = MessageFactory(sender=ana, recipient=ben)
        second = MessageFactory(sender=ben, recipient=ana)
        MessageFactory(sender=ana, recipient=cleo)

        response = client_for(ana).get(HISTORY_URL.format(user_id=ben.pk))

        assert response.status_code == status.HTTP_200_OK
        assert [m["id"] for m in response.data] == [first.pk, second.pk]

    def test_empty(self, client_for, ana, ben):
        response = client_for(ana).get(HISTORY_URL.format(user_id=ben.pk))

        assert response.data == []

    def test_only_own_conversations(self, client_for, ana, ben, cleo):
        """
        History is always scoped to the requesting user.

        Why it matters: A third party asking for "history with ben" gets
        their own (empty) conversation, never ana's.
        """
        MessageFactory(sender=ana, recipient=ben)

        response = client_for(cleo).get(HISTORY_URL.format(user_id=ben.pk))

        assert response.data == []


class TestMarkReadView:
    """POST /api/v1/chat/messages/{id}/read/"""

    def test_recipient_marks_read_and_sender_is_notified(self, client_for, channel_layer, ana, ben):
        message = MessageFactory(sender=ana, recipient=ben)
        ana_channel = join_channel(channel_layer, ana)

        response = client_for(ben).post(READ_URL.format(pk=message.pk))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["read"] is True
        event = next_event(channel_layer, ana_channel)
        assert event["event"] == "messageRead"
        assert event["data"] == {"messageId": message.pk, "readerId": str(ben.pk)}

    def test_sender_forbidden(self, client_for, ana, ben):
        message = MessageFactory(sender=ana, recipient=ben)

        response = client_for(ana).post(READ_URL.format(pk=message.pk))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_RECIPIENT"

    def test_unknown_message_404(self, client_for, ben):
        response = client_for(ben).post(READ_URL.format(pk=123456))

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestUnreadCountView:
    """GET /api/v1/chat/messages/unread/"""

    def test_counts(self, client_for, ana, ben, cleo):
        MessageFactory.create_batch(2, sender=ana, recipient=ben)
        MessageFactory(sender=cleo, recipient=ben)
        MessageFactory(sender=ana, recipient=ben, read=True)

        response = client_for(ben).get(UNREAD_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["total"] == 3
        assert response.data["by_sender"] == {str(ana.pk): 2, str(cleo.pk): 1}


# =============================================================================
# Presence
# =============================================================================


class TestUserPresenceView:
    """GET /api/v1/chat/presence/{user_id}/"""

    def test_friend_online(self, client_for, channel_layer, friends, ana, ben):
        join_channel(channel_layer, ben)
        join_channel(channel_layer, ben)

        response = client_for(ana).get(PRESENCE_URL.format(user_id=ben.pk))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["online"] is True
        assert response.data["connections"] == 2

    def test_friend_offline(self, client_for, friends, ana, ben):
        response = client_for(ana).get(PRESENCE_URL.format(user_id=ben.pk))

        assert response.data["online"] is False
        assert response.data["connections"] == 0

    def test_self(self, client_for, channel_layer, ana):
        join_channel(channel_layer, ana)

        response = client_for(ana).get(PRESENCE_URL.format(user_id=ana.pk))

        assert response.data["online"] is True

    def test_stranger_forbidden(self, client_for, ana, cleo):
        response = client_for(ana).get(PRESENCE_URL.format(user_id=cleo.pk))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_stranger_visible_without_friendship_gate(self, client_for, settings, ana, cleo):
        settings.CHAT_REQUIRE_FRIENDSHIP = False

        response = client_for(ana).get(PRESENCE_URL.format(user_id=uuid.UUID(str(cleo.pk))))

        assert response.status_code == status.HTTP_200_OK
