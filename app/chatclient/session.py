"""
Chat session: one signed-in user, one connection, one active conversation.

ChatSession wires server pushes into the active ConversationView and turns
user actions into socket frames.

Send flow:
    1. add_pending() renders the message at once with a provisional id
    2. sendMessage is emitted with the provisional id and an ack ref
    3. ack ok       -> confirm(): provisional entry becomes the durable one
       ack failure  -> fail(): entry removed, error recorded, re-raised
       no ack       -> entry stays PENDING; the echo or the next history
                       load settles it

Switching partners always refetches history into a fresh view, so nothing
from a previous conversation carries over.
"""

from __future__ import annotations

import logging
from collections import Counter

from .api import ChatApiClient
from .connection import RECONNECT, ChatConnection
from .exceptions import ChatClientError, SendFailedError, TransportError
from .reconciliation import ConversationView, InFlightRegistry, LocalMessage
from .typing_state import TypingIndicator

logger = logging.getLogger(__name__)


class ChatSession:
    """
    Attributes:
        user_id: The signed-in user
        view: ConversationView of the selected partner, or None
        typing: Typing flags of people typing to this user
        unread_elsewhere: Pushed messages per sender outside the active view
    """

    def __init__(
        self,
        user_id: str,
        connection: ChatConnection,
        api: ChatApiClient,
        typing: TypingIndicator | None = None,
    ):
        self.user_id = str(user_id)
        self.connection = connection
        self.api = api
        self.typing = typing or TypingIndicator()
        self.in_flight = InFlightRegistry()
        self.view: ConversationView | None = None
        self.unread_elsewhere: Counter[str] = Counter()

    async def start(self) -> None:
        self.connection.on("receiveMessage", self._on_message)
        self.connection.on("typing", self._on_typing)
        self.connection.on("messageRead", self._on_read)
        self.connection.on(RECONNECT, self._on_reconnect)
        await self.connection.connect()

    async def close(self) -> None:
        await self.connection.disconnect()
        await self.api.close()

    # -------------------------------------------------------------------------
    # User actions
    # -------------------------------------------------------------------------

    async def select_partner(self, partner_id) -> ConversationView:
        """
        Open the conversation with partner_id from fresh server history.

        The new view is active before history is requested, so pushes that
        arrive during the fetch land in it and survive the merge.
        """
        partner_id = str(partner_id)
        view = ConversationView(self.user_id, partner_id, in_flight=self.in_flight)
        self.view = view
        self.unread_elsewhere.pop(partner_id, None)
        view.load_history(await self.api.history(partner_id))
        return view

    async def send(self, content: str) -> LocalMessage:
        """
        Send to the active partner.

        Returns:
            The durable message, or the still-pending one if the socket
            could not confirm it

        Raises:
            SendFailedError: The server refused it; the local entry was
                rolled back
        """
        view = self._require_view()
        pending = view.add_pending(content)
        try:
            payload = await self.connection.emit(
                "sendMessage",
                {"from": self.user_id, "to": view.partner, "content": content, "id": pending.id},
            )
        except SendFailedError as e:
            view.fail(pending.id, e.message)
            raise
        except TransportError as e:
            logger.warning("Send %s unconfirmed: %s", pending.id, e)
            return pending

        # The view may have changed while waiting for the ack
        if self.view is not view:
            return LocalMessage.from_payload(payload)
        return view.confirm(pending.id, payload)

    async def notify_typing(self) -> None:
        view = self._require_view()
        try:
            await self.connection.emit(
                "typing",
                {"senderId": self.user_id, "receiverId": view.partner},
                ack=False,
            )
        except TransportError:
            logger.debug("Typing signal dropped, not connected")

    async def mark_read(self, message_id: int) -> None:
        await self.connection.emit("markRead", {"messageId": message_id, "readerId": self.user_id})
        if self.view is not None:
            self.view.mark_read(message_id)

    # -------------------------------------------------------------------------
    # Server pushes
    # -------------------------------------------------------------------------

    def _on_message(self, payload: dict) -> None:
        sender = str(payload.get("from"))
        if sender != self.user_id:
            self.typing.clear(sender)

        if self.view is not None and self.view.apply_push(payload) is not None:
            return
        if sender != self.user_id:
            self.unread_elsewhere[sender] += 1

    def _on_typing(self, payload: dict) -> None:
        if str(payload.get("receiverId")) == self.user_id:
            self.typing.signal(payload.get("senderId"))

    def _on_read(self, payload: dict) -> None:
        if self.view is not None:
            self.view.mark_read(payload.get("messageId"))

    async def _on_reconnect(self, _data) -> None:
        # Pushes sent while offline are not replayed; history is. Pending
        # entries survive the reload.
        view = self.view
        if view is not None:
            view.load_history(await self.api.history(view.partner))

    def _require_view(self) -> ConversationView:
        if self.view is None:
            raise ChatClientError("Select a conversation first", error_code="NO_CONVERSATION")
        return self.view
