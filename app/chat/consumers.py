"""
WebSocket consumer for the chat core.

Consumers:
    ChatConsumer: One live connection. Joins its user's room, accepts
        send/typing/read events, and relays room events back to the socket

Authentication:
    JWTAuthMiddleware attaches the user to self.scope["user"]. The join
    event must name that same user. Anonymous sockets are closed on connect
    unless CHAT_ALLOW_ANONYMOUS_JOIN is set, in which case join trusts the
    user id it is given.

Frames (both directions):
    {"event": "<name>", "data": <payload>, "ref": <optional correlation id>}

Events (from client):
    - join: "userId" or {"userId"}
    - sendMessage: {from, to, content, id?}
    - typing: {senderId, receiverId}
    - markRead: {messageId, readerId}

Events (to client):
    - receiveMessage: message wire form
    - typing: {senderId, receiverId}
    - messageRead: {messageId, readerId}
    - ack: {"ref", "ok", "data"} or {"ref", "ok": false, "error", "error_code"}
    - error: {"error", "error_code"} for failed frames that carried no ref

Failures are reported to the originating connection only and never close
the socket.
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.conf import settings

from authentication.services import UserDirectory
from chat.constants import CLOSE_UNAUTHENTICATED, TRANSPORT_ERRORS, TRANSPORT_EVENTS
from chat.middleware import JWT_SUBPROTOCOL
from chat.serializers import (
    FrameSerializer,
    JoinSerializer,
    ReadReceiptSerializer,
    SendMessageSerializer,
    TypingSerializer,
)
from chat.services import (
    DeliveryRouter,
    PresenceRegistry,
    SendIntent,
    normalize_identity,
)
from core.exceptions import ConflictError
from core.services import ServiceResult

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat.

    Attributes:
        joined_user_id: Canonical id of the room this connection joined, or
            None before join
        presence: PresenceRegistry bound to this consumer's channel layer
        router: DeliveryRouter sharing that registry
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.joined_user_id: str | None = None
        self.presence: PresenceRegistry | None = None
        self.router: DeliveryRouter | None = None
        self.handlers = {
            TRANSPORT_EVENTS.JOIN: self.handle_join,
            TRANSPORT_EVENTS.SEND_MESSAGE: self.handle_send_message,
            TRANSPORT_EVENTS.TYPING: self.handle_typing,
            TRANSPORT_EVENTS.MARK_READ: self.handle_mark_read,
        }

    @property
    def user(self):
        return self.scope.get("user")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user and self.user.is_authenticated)

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    async def connect(self):
        if not self.is_authenticated and not settings.CHAT_ALLOW_ANONYMOUS_JOIN:
            logger.warning("Rejected unauthenticated chat connection %s", self.channel_name)
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return

        self.presence = PresenceRegistry(channel_layer=self.channel_layer)
        self.router = DeliveryRouter(presence=self.presence)

        # Browsers require the server to select one of the offered subprotocols
        subprotocol = JWT_SUBPROTOCOL if JWT_SUBPROTOCOL in self.scope.get("subprotocols", []) else None
        await self.accept(subprotocol=subprotocol)
        logger.info(
            "Chat connection %s opened (user %s)",
            self.channel_name,
            self.user.pk if self.is_authenticated else "anonymous",
        )

    async def disconnect(self, close_code):
        if self.presence is None:
            return
        user_id = await self.presence.leave(self.channel_name, self.joined_user_id)
        if user_id:
            logger.info("User %s disconnected (%s)", user_id, close_code)
        self.joined_user_id = None

    # -------------------------------------------------------------------------
    # Inbound frames
    # -------------------------------------------------------------------------

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        if text_data is None:
            await self.reply(None, self.failure("Binary frames are not supported", TRANSPORT_ERRORS.INVALID_FRAME))
            return
        try:
            content = await self.decode_json(text_data)
        except ValueError:
            await self.reply(None, self.failure("Frame is not valid JSON", TRANSPORT_ERRORS.INVALID_FRAME))
            return
        await self.receive_json(content, **kwargs)

    async def receive_json(self, content, **kwargs):
        if not isinstance(content, dict):
            await self.reply(None, self.failure("Frame must be a JSON object", TRANSPORT_ERRORS.INVALID_FRAME))
            return

        frame = FrameSerializer(data=content)
        if not frame.is_valid():
            await self.reply(
                content.get("ref"),
                self.failure("Frame must carry an event name", TRANSPORT_ERRORS.INVALID_FRAME, frame.errors),
            )
            return

        event = frame.validated_data["event"]
        ref = frame.validated_data.get("ref")
        data = frame.validated_data.get("data")

        handler = self.handlers.get(event)
        if handler is None:
            await self.reply(ref, self.failure(f"Unknown event: {event}", TRANSPORT_ERRORS.UNKNOWN_EVENT))
            return

        result = await handler(data)
        await self.reply(ref, result)

    async def handle_join(self, data) -> ServiceResult:
        payload = JoinSerializer(data=data)
        if not payload.is_valid():
            return self.invalid(payload)

        user_id = normalize_identity(payload.validated_data["userId"])
        if user_id is None:
            return self.failure("userId must be a valid user id", TRANSPORT_ERRORS.UNKNOWN_USER)

        if self.is_authenticated:
            if user_id != str(self.user.pk):
                logger.warning(
                    "User %s tried to join room of %s", self.user.pk, user_id
                )
                return self.failure("Cannot join another user's room", TRANSPORT_ERRORS.IDENTITY_MISMATCH)
        elif await database_sync_to_async(UserDirectory.get_active)(user_id) is None:
            return self.failure("Unknown user", TRANSPORT_ERRORS.UNKNOWN_USER)

        if self.joined_user_id is not None and self.joined_user_id != user_id:
            return self.failure(
                "Connection already joined as another user", TRANSPORT_ERRORS.IDENTITY_MISMATCH
            )

        try:
            await self.presence.join(user_id, self.channel_name)
        except ConflictError as e:
            return ServiceResult.failure(e.message, TRANSPORT_ERRORS.IDENTITY_MISMATCH)

        self.joined_user_id = user_id
        return ServiceResult.success({"userId": user_id})

    async def handle_send_message(self, data) -> ServiceResult:
        denied = self.require_joined()
        if denied:
            return denied

        payload = SendMessageSerializer(data=data)
        if not payload.is_valid():
            return self.invalid(payload)

        values = payload.validated_data
        if normalize_identity(values["from"]) != self.joined_user_id:
            return self.failure("from must be the joined user", TRANSPORT_ERRORS.IDENTITY_MISMATCH)

        return await self.router.send(
            SendIntent(
                sender_id=self.joined_user_id,
                recipient_id=values["to"],
                content=values["content"],
                client_id=values.get("id"),
            )
        )

    async def handle_typing(self, data) -> ServiceResult:
        denied = self.require_joined()
        if denied:
            return denied

        payload = TypingSerializer(data=data)
        if not payload.is_valid():
            return self.invalid(payload)

        values = payload.validated_data
        if normalize_identity(values["senderId"]) != self.joined_user_id:
            return self.failure("senderId must be the joined user", TRANSPORT_ERRORS.IDENTITY_MISMATCH)

        return await self.router.relay_typing(self.joined_user_id, values["receiverId"])

    async def handle_mark_read(self, data) -> ServiceResult:
        denied = self.require_joined()
        if denied:
            return denied

        payload = ReadReceiptSerializer(data=data)
        if not payload.is_valid():
            return self.invalid(payload)

        values = payload.validated_data
        if normalize_identity(values["readerId"]) != self.joined_user_id:
            return self.failure("readerId must be the joined user", TRANSPORT_ERRORS.IDENTITY_MISMATCH)

        return await self.router.acknowledge_read(values["messageId"], self.joined_user_id)

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def chat_event(self, event):
        """Room event from the channel layer (type "chat.event")."""
        await self.send_json({"event": event["event"], "data": event["data"]})

    async def reply(self, ref, result: ServiceResult):
        """
        Acknowledge a frame to this connection only.

        Frames with a ref always get an ack. Frames without one only hear
        back when they failed.
        """
        if ref is not None:
            frame = {"event": TRANSPORT_EVENTS.ACK, "ref": ref, "ok": result.success}
            if result.success:
                frame["data"] = result.data
            else:
                frame["error"] = result.error
                frame["error_code"] = result.error_code
                if result.errors:
                    frame["errors"] = result.errors
            await self.send_json(frame)
        elif not result.success:
            await self.send_json(
                {
                    "event": TRANSPORT_EVENTS.ERROR,
                    "data": {"error": result.error, "error_code": result.error_code},
                }
            )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def require_joined(self) -> ServiceResult | None:
        if self.joined_user_id is None:
            return self.failure("Join a room before sending events", TRANSPORT_ERRORS.NOT_JOINED)
        return None

    @staticmethod
    def failure(error: str, error_code: str, errors=None) -> ServiceResult:
        return ServiceResult.failure(error, error_code=error_code, errors=errors)

    @staticmethod
    def invalid(serializer) -> ServiceResult:
        return ServiceResult.failure(
            "Invalid event payload",
            error_code=TRANSPORT_ERRORS.INVALID_PAYLOAD,
            errors=serializer.errors,
        )
