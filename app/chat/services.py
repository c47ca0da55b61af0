"""
Chat core service layer.

This module provides the three services behind real-time delivery:

Services:
    MessageStore: Durable append-only log of direct messages (sync, ORM)
    PresenceRegistry: Which live connections belong to which user (async,
        channel layer groups plus cache bookkeeping)
    DeliveryRouter: Takes a send-intent, persists it, then fans it out to
        both users' rooms (async)

Design Principles:
    - The store raises core.exceptions; the router converts them to
      ServiceResult failures so transports can acknowledge without try/except
    - Persist before broadcast, never the reverse: a pushed message always
      has a durable id and server timestamp
    - Broadcast is best-effort; a user with no live connection simply
      receives nothing and catches up through history
    - One room per user, named user_<id>

Usage:
    from chat.services import DeliveryRouter, MessageStore, SendIntent

    router = DeliveryRouter()
    result = await router.send(SendIntent(sender_id, recipient_id, "hi"))
    if result:
        payload = result.data

    history = MessageStore.history(user_a_id, user_b_id)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async
from channels.exceptions import ChannelFull
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.cache import cache as default_cache
from django.db import DatabaseError
from django.db.models import Count, Q
from django.utils import timezone

from authentication.services import UserDirectory
from chat.constants import MESSAGE_CONFIG, PRESENCE_CONFIG, TRANSPORT_EVENTS
from chat.models import Message
from chat.serializers import message_payload
from core.exceptions import (
    AuthorizationError,
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from core.services import BaseService, ServiceResult
from friends.services import FriendService

if TYPE_CHECKING:
    from uuid import UUID


def normalize_identity(value) -> str | None:
    """
    Canonical string form of a user identity key, or None if malformed.

    Clients may send UUIDs in any case or with/without hyphens; rooms and
    comparisons always use the canonical hyphenated lowercase form.
    """
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError, AttributeError):
        return None


# =============================================================================
# Message Store
# =============================================================================


class MessageStore(BaseService):
    """
    Durable message log.

    All methods are synchronous ORM calls. Async callers wrap them with
    database_sync_to_async.

    Usage:
        message = MessageStore.append(sender_id, recipient_id, "hello")
        MessageStore.mark_read(message.id, recipient_id)
        MessageStore.history(sender_id, recipient_id)
    """

    @classmethod
    def append(
        cls,
        sender_id: UUID | str,
        recipient_id: UUID | str,
        content: str,
        client_id: str | None = None,
    ) -> Message:
        """
        Validate and persist a message; assign its durable id and timestamp.

        Args:
            sender_id: Identity key of the author
            recipient_id: Identity key of the addressee
            content: Raw text; stored trimmed
            client_id: Optional provisional id from the sending client

        Returns:
            The stored Message (read=False)

        Raises:
            ValidationError: Empty or over-long content, self-addressed,
                unknown or inactive users, over-long client_id
            PersistenceError: The database rejected or could not take the write
        """
        if not isinstance(content, str):
            raise ValidationError("Message content must be text", error_code="INVALID_CONTENT")

        text = content.strip()
        if len(text) < MESSAGE_CONFIG.MIN_CONTENT_LENGTH:
            raise ValidationError("Message content cannot be empty", error_code="EMPTY_CONTENT")
        if len(text) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            raise ValidationError(
                f"Message content exceeds {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code="CONTENT_TOO_LONG",
                details={"max_length": MESSAGE_CONFIG.MAX_CONTENT_LENGTH},
            )
        if client_id is not None and len(client_id) > MESSAGE_CONFIG.MAX_CLIENT_ID_LENGTH:
            raise ValidationError("client_id is too long", error_code="INVALID_CLIENT_ID")

        sender_key = normalize_identity(sender_id)
        recipient_key = normalize_identity(recipient_id)
        if sender_key is not None and sender_key == recipient_key:
            raise ValidationError("Cannot send a message to yourself", error_code="SELF_MESSAGE")

        try:
            sender = UserDirectory.get_active(sender_key) if sender_key else None
            if sender is None:
                raise ValidationError(
                    "Sender does not exist or is inactive", error_code="UNKNOWN_SENDER"
                )
            recipient = UserDirectory.get_active(recipient_key) if recipient_key else None
            if recipient is None:
                raise ValidationError(
                    "Recipient does not exist or is inactive", error_code="UNKNOWN_RECIPIENT"
                )

            with cls.atomic():
                message = Message.objects.create(
                    sender=sender,
                    recipient=recipient,
                    content=text,
                    client_id=client_id or None,
                )
        except DatabaseError as e:
            cls.get_logger().exception(
                "Failed to persist message from %s to %s", sender_key, recipient_key
            )
            raise PersistenceError("Message could not be stored") from e

        cls.get_logger().debug(
            "Stored message %s from %s to %s", message.pk, sender_key, recipient_key
        )
        return message

    @staticmethod
    def get(message_id: int) -> Message:
        """
        Raises:
            NotFoundError: If no message has this id
        """
        try:
            return Message.objects.get(pk=message_id)
        except (Message.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(
                f"Message {message_id} not found",
                error_code="MESSAGE_NOT_FOUND",
            )

    @staticmethod
    def history(user_a: UUID | str, user_b: UUID | str) -> list[Message]:
        """
        Every message between two users, both directions, oldest first.

        Order is (created_at, id) ascending. Restartable: a pure read with no
        cursor state. Malformed identity keys yield an empty history.
        """
        a, b = normalize_identity(user_a), normalize_identity(user_b)
        if a is None or b is None:
            return []
        return list(
            Message.objects.filter(
                Q(sender_id=a, recipient_id=b) | Q(sender_id=b, recipient_id=a)
            ).order_by("created_at", "id")
        )

    @classmethod
    def mark_read(cls, message_id: int, reader_id: UUID | str) -> Message:
        """
        Flip a message to read on behalf of its recipient.

        Idempotent: an already-read message is returned unchanged.

        Raises:
            NotFoundError: If the message does not exist
            AuthorizationError: If reader_id is not the recipient
        """
        with cls.atomic():
            try:
                message = Message.objects.select_for_update().get(pk=message_id)
            except (Message.DoesNotExist, ValueError, TypeError):
                raise NotFoundError(
                    f"Message {message_id} not found",
                    error_code="MESSAGE_NOT_FOUND",
                )

            if normalize_identity(reader_id) != str(message.recipient_id):
                raise AuthorizationError(
                    "Only the recipient can mark a message as read",
                    error_code="NOT_RECIPIENT",
                )

            if not message.is_read:
                message.is_read = True
                message.read_at = timezone.now()
                message.save(update_fields=["is_read", "read_at", "updated_at"])

        return message

    @staticmethod
    def unread_count(recipient_id: UUID | str, sender_id: UUID | str | None = None) -> int:
        """Unread messages addressed to the recipient, optionally from one sender."""
        queryset = Message.objects.filter(recipient_id=recipient_id, is_read=False)
        if sender_id is not None:
            queryset = queryset.filter(sender_id=sender_id)
        return queryset.count()

    @staticmethod
    def unread_by_sender(recipient_id: UUID | str) -> dict[str, int]:
        """Unread counts grouped by sender id (only non-zero senders)."""
        rows = (
            Message.objects.filter(recipient_id=recipient_id, is_read=False)
            .values("sender_id")
            .annotate(unread=Count("id"))
            .order_by()
        )
        return {str(row["sender_id"]): row["unread"] for row in rows}


# =============================================================================
# Presence Registry
# =============================================================================


class PresenceRegistry(BaseService):
    """
    Live connection membership, one room per user.

    The channel layer group is the source of truth for fan-out; the cache
    keeps the reverse mappings needed to answer "which user is this
    connection" on disconnect and "is this user online" for the REST API.

    Cache layout:
        presence:conn:<channel_name> -> "<user id>"
        presence:user:<user id>      -> ["<channel_name>", ...]

    Note:
        The per-user list is updated read-modify-write. Two connections of the
        same user joining at the same instant on different workers can drop
        one entry from the list; fan-out is unaffected because the group
        membership itself is maintained by the channel layer.

    Usage:
        presence = PresenceRegistry()
        await presence.join(user_id, self.channel_name)
        await presence.broadcast_to(user_id, "receiveMessage", payload)
        await presence.leave(self.channel_name, user_id)
    """

    def __init__(self, channel_layer=None, cache=None):
        self.channel_layer = channel_layer or get_channel_layer()
        self.cache = cache or default_cache

    @staticmethod
    def room_name(user_id: UUID | str) -> str:
        """Room naming is the identity function user_id -> user_<user_id>."""
        return f"{PRESENCE_CONFIG.ROOM_PREFIX}{user_id}"

    @staticmethod
    def _connection_key(channel_name: str) -> str:
        return f"{PRESENCE_CONFIG.KEY_PREFIX_CONNECTION}:{channel_name}"

    @staticmethod
    def _user_key(user_id: UUID | str) -> str:
        return f"{PRESENCE_CONFIG.KEY_PREFIX_USER}:{user_id}"

    async def join(self, user_id: UUID | str, channel_name: str) -> None:
        """
        Add a connection to the user's room.

        Re-joining the same room is idempotent.

        Raises:
            ConflictError: If the connection already joined another user's room
        """
        user_id = str(user_id)
        current = await self.cache.aget(self._connection_key(channel_name))
        if current is not None and current != user_id:
            raise ConflictError(
                "Connection already joined as another user",
                error_code="ALREADY_JOINED",
            )

        await self.channel_layer.group_add(self.room_name(user_id), channel_name)
        await self.cache.aset(
            self._connection_key(channel_name),
            user_id,
            timeout=PRESENCE_CONFIG.CONNECTION_TTL_SECONDS,
        )

        connections = set(await self.cache.aget(self._user_key(user_id), []))
        connections.add(channel_name)
        await self.cache.aset(
            self._user_key(user_id),
            sorted(connections),
            timeout=PRESENCE_CONFIG.CONNECTION_TTL_SECONDS,
        )
        self.get_logger().info("Connection %s joined %s", channel_name, self.room_name(user_id))

    async def leave(self, channel_name: str, user_id: UUID | str | None = None) -> str | None:
        """
        Remove a connection from whatever room it joined.

        Args:
            channel_name: The connection's channel
            user_id: Room the caller knows the connection joined; used when
                the cache entry for the connection has expired or been evicted

        Returns:
            The user id the connection belonged to, or None for a connection
            that never joined (no-op).
        """
        cached = await self.cache.aget(self._connection_key(channel_name))
        user_id = cached or normalize_identity(user_id)
        if user_id is None:
            return None

        await self.channel_layer.group_discard(self.room_name(user_id), channel_name)
        await self.cache.adelete(self._connection_key(channel_name))

        connections = set(await self.cache.aget(self._user_key(user_id), []))
        connections.discard(channel_name)
        if connections:
            await self.cache.aset(
                self._user_key(user_id),
                sorted(connections),
                timeout=PRESENCE_CONFIG.CONNECTION_TTL_SECONDS,
            )
        else:
            await self.cache.adelete(self._user_key(user_id))

        self.get_logger().info("Connection %s left %s", channel_name, self.room_name(user_id))
        return user_id

    async def broadcast_to(self, user_id: UUID | str, event: str, payload: dict) -> None:
        """
        Deliver an event to every live connection of a user.

        Fire-and-forget: no delivery confirmation, nothing queued for users
        who are offline. A full channel drops the event for that group.
        """
        try:
            await self.channel_layer.group_send(
                self.room_name(user_id),
                {
                    "type": TRANSPORT_EVENTS.LAYER_TYPE,
                    "event": event,
                    "data": payload,
                },
            )
        except ChannelFull:
            self.get_logger().warning(
                "Dropped %s for %s: channel full", event, self.room_name(user_id)
            )

    async def connections(self, user_id: UUID | str) -> list[str]:
        """Channel names currently joined to the user's room."""
        user_id = str(user_id)
        live = []
        for channel_name in await self.cache.aget(self._user_key(user_id), []):
            # Skip entries whose connection key already expired
            if await self.cache.aget(self._connection_key(channel_name)) == user_id:
                live.append(channel_name)
        return live

    async def is_online(self, user_id: UUID | str) -> bool:
        return bool(await self.connections(user_id))


# =============================================================================
# Delivery Router
# =============================================================================


@dataclass(frozen=True)
class SendIntent:
    """A request to deliver one message: {from, to, content[, client_id]}."""

    sender_id: str
    recipient_id: str
    content: str
    client_id: str | None = None


class DeliveryRouter(BaseService):
    """
    Routes send-intents, typing signals and read receipts.

    Per send-intent: Pending -> Sent (persisted, then broadcast to recipient
    and sender rooms) or Pending -> Failed (nothing broadcast, failure
    returned for the originating connection only).

    Usage:
        router = DeliveryRouter(presence=PresenceRegistry(self.channel_layer))
        result = await router.send(SendIntent(me, friend, "hi", "tmp-1"))
    """

    def __init__(
        self,
        presence: PresenceRegistry | None = None,
        require_friendship: bool | None = None,
    ):
        self.presence = presence or PresenceRegistry()
        if require_friendship is None:
            require_friendship = settings.CHAT_REQUIRE_FRIENDSHIP
        self.require_friendship = require_friendship

    async def send(self, intent: SendIntent) -> ServiceResult[dict]:
        """
        Persist a message, then push it to both users' rooms.

        Order of operations:
            1. Friendship check (when required) - no persistence on failure
            2. MessageStore.append - validation and persistence
            3. broadcast receiveMessage to recipient, then to sender

        Returns:
            ServiceResult with the message wire form, or a failure carrying
            the error and error_code
        """
        sender_id = normalize_identity(intent.sender_id)
        recipient_id = normalize_identity(intent.recipient_id)
        if sender_id is None or recipient_id is None:
            return ServiceResult.failure(
                "Sender and recipient must be valid user ids",
                error_code="INVALID_USER_ID",
            )

        if self.require_friendship and sender_id != recipient_id:
            are_friends = await database_sync_to_async(FriendService.are_friends)(
                sender_id, recipient_id
            )
            if not are_friends:
                return ServiceResult.from_exception(
                    AuthorizationError(
                        "You can only message users who accepted your friend request",
                        error_code="NOT_FRIENDS",
                    )
                )

        try:
            message = await database_sync_to_async(MessageStore.append)(
                sender_id, recipient_id, intent.content, intent.client_id
            )
        except PersistenceError as e:
            return self.handle_exception(e, "sendMessage")
        except BaseApplicationError as e:
            return ServiceResult.from_exception(e)

        payload = message_payload(message)

        await self.presence.broadcast_to(recipient_id, TRANSPORT_EVENTS.RECEIVE_MESSAGE, payload)
        await self.presence.broadcast_to(sender_id, TRANSPORT_EVENTS.RECEIVE_MESSAGE, payload)

        return ServiceResult.success(payload)

    async def relay_typing(self, sender_id: str, receiver_id: str) -> ServiceResult[dict]:
        """Forward a typing signal to the receiver's room. Nothing is stored."""
        sender_key = normalize_identity(sender_id)
        receiver_key = normalize_identity(receiver_id)
        if sender_key is None or receiver_key is None:
            return ServiceResult.failure(
                "senderId and receiverId must be valid user ids",
                error_code="INVALID_USER_ID",
            )

        payload = {"senderId": sender_key, "receiverId": receiver_key}
        await self.presence.broadcast_to(receiver_key, TRANSPORT_EVENTS.TYPING, payload)
        return ServiceResult.success(payload)

    async def acknowledge_read(self, message_id: int, reader_id: str) -> ServiceResult[dict]:
        """
        Mark a message read and notify its sender.

        Re-acknowledging an already-read message succeeds and re-emits the
        receipt. Errors are returned to the caller, never broadcast.
        """
        try:
            message = await database_sync_to_async(MessageStore.mark_read)(message_id, reader_id)
        except BaseApplicationError as e:
            return ServiceResult.from_exception(e)

        receipt = {"messageId": message.pk, "readerId": str(message.recipient_id)}
        await self.presence.broadcast_to(
            message.sender_id, TRANSPORT_EVENTS.MESSAGE_READ, receipt
        )

        payload = message_payload(message)
        return ServiceResult.success(payload)
