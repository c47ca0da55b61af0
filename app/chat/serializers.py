"""
Serializers for the chat core.

Two groups live here:
- MessageSerializer: the canonical wire form of a message, shared by the
  WebSocket fan-out, acknowledgements and the REST API
- Inbound payload serializers: every WebSocket frame and REST body is
  validated at the boundary before it reaches the services

Wire form:
    {
        "id": 42,
        "from": "<sender uuid>",
        "to": "<recipient uuid>",
        "content": "hi",
        "timestamp": "2024-05-01T10:00:00.123456Z",
        "read": false,
        "client_id": "tmp-..." | null
    }

Note:
    "from" is a Python keyword, so fields using it are added in get_fields().
"""

from rest_framework import serializers

from chat.constants import MESSAGE_CONFIG
from chat.models import Message


# =============================================================================
# Outbound
# =============================================================================


class MessageSerializer(serializers.ModelSerializer):
    """Canonical message representation."""

    timestamp = serializers.DateTimeField(source="created_at", read_only=True)
    read = serializers.BooleanField(source="is_read", read_only=True)

    class Meta:
        model = Message
        fields = ["id", "content", "timestamp", "read", "client_id"]
        read_only_fields = fields

    def get_fields(self):
        fields = super().get_fields()
        fields["from"] = serializers.UUIDField(source="sender_id", read_only=True)
        fields["to"] = serializers.UUIDField(source="recipient_id", read_only=True)
        return fields


def message_payload(message: Message) -> dict:
    """Plain dict wire form, safe to put on the channel layer."""
    return dict(MessageSerializer(message).data)


class ReadReceiptSerializer(serializers.Serializer):
    """messageRead payload, also the markRead inbound payload."""

    messageId = serializers.IntegerField(min_value=1)
    readerId = serializers.CharField(max_length=64)


class UnreadCountSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    by_sender = serializers.DictField(child=serializers.IntegerField())


class PresenceSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()
    online = serializers.BooleanField()
    connections = serializers.IntegerField()


# =============================================================================
# Inbound (WebSocket)
# =============================================================================


class FrameSerializer(serializers.Serializer):
    """Envelope of every client frame: {"event", "data", "ref"}."""

    event = serializers.CharField(max_length=64)
    data = serializers.JSONField(required=False, allow_null=True)
    ref = serializers.JSONField(required=False, allow_null=True)


class JoinSerializer(serializers.Serializer):
    userId = serializers.CharField(max_length=64)

    def to_internal_value(self, data):
        # The legacy client sends the bare user id string
        if isinstance(data, str):
            data = {"userId": data}
        return super().to_internal_value(data)


class SendMessageSerializer(serializers.Serializer):
    """
    sendMessage payload: {from, to, content[, id]}.

    Content is not trimmed or checked for emptiness here; the message store
    owns those rules so that REST and WebSocket fail identically.
    """

    content = serializers.CharField(allow_blank=True, trim_whitespace=False)
    id = serializers.CharField(
        required=False,
        allow_null=True,
        max_length=MESSAGE_CONFIG.MAX_CLIENT_ID_LENGTH,
    )

    def get_fields(self):
        fields = super().get_fields()
        fields["from"] = serializers.CharField(max_length=64)
        fields["to"] = serializers.CharField(max_length=64)
        return fields


class TypingSerializer(serializers.Serializer):
    senderId = serializers.CharField(max_length=64)
    receiverId = serializers.CharField(max_length=64)


# =============================================================================
# Inbound (REST)
# =============================================================================


class MessageCreateSerializer(serializers.Serializer):
    """POST /api/v1/chat/messages/ body. The sender is the authenticated user."""

    to = serializers.UUIDField()
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)
    client_id = serializers.CharField(
        required=False,
        allow_null=True,
        max_length=MESSAGE_CONFIG.MAX_CLIENT_ID_LENGTH,
    )
