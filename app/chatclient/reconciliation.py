"""
Client-side reconciliation of optimistic messages with server echoes.

Two identifier spaces meet here: provisional ids the client invents when it
renders a message before the server has stored it ("tmp-<uuid4>"), and the
durable integer ids the server assigns. Every server push for a message this
client sent must replace the provisional entry, never sit beside it.

Classes:
    InFlightRegistry: Bounded, time-windowed set of provisional ids awaiting
        their echo
    LocalMessage: One entry of the local view
    ConversationView: Ordered local view of one two-party conversation

Matching a push against local entries, in order:
    1. Exact durable id already present: update in place
    2. client_id echo equals a pending provisional id: replace it
    3. Same sender and content, timestamps within tolerance, and the
       provisional id still in flight: replace it
    4. Otherwise: a new message, append it

Usage:
    view = ConversationView(me, partner)
    pending = view.add_pending("hi")
    ...
    view.apply_push(payload)   # server echo, replaces `pending`
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from .constants import CLIENT_CONFIG

logger = logging.getLogger(__name__)


# =============================================================================
# In-flight registry
# =============================================================================


class InFlightRegistry:
    """
    Provisional ids sent but not yet settled.

    Entries leave on explicit evict() (confirmed or failed), on expiry after
    ttl seconds, or as least recently registered when max_size is exceeded.
    Expiry is checked lazily on every access.
    """

    def __init__(
        self,
        ttl: float = CLIENT_CONFIG.IN_FLIGHT_TTL_SECONDS,
        max_size: int = CLIENT_CONFIG.IN_FLIGHT_MAX_SIZE,
    ):
        if ttl <= 0 or max_size <= 0:
            raise ValueError("ttl and max_size must be positive")
        self.ttl = ttl
        self.max_size = max_size
        self._entries: OrderedDict[str, float] = OrderedDict()

    def add(self, provisional_id: str) -> None:
        self._purge()
        self._entries[provisional_id] = time.monotonic()
        self._entries.move_to_end(provisional_id)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("In-flight registry full, dropped %s", evicted)

    def evict(self, provisional_id: str) -> bool:
        """Remove an id. Returns whether it was still in flight."""
        self._purge()
        return self._entries.pop(provisional_id, None) is not None

    def ids(self) -> list[str]:
        self._purge()
        return list(self._entries)

    def __contains__(self, provisional_id: object) -> bool:
        self._purge()
        return provisional_id in self._entries

    def __len__(self) -> int:
        self._purge()
        return len(self._entries)

    def _purge(self) -> None:
        cutoff = time.monotonic() - self.ttl
        # Entries are kept in registration order, oldest first
        while self._entries:
            oldest_id, registered_at = next(iter(self._entries.items()))
            if registered_at > cutoff:
                break
            del self._entries[oldest_id]


# =============================================================================
# Local messages
# =============================================================================


class MessageState(str, Enum):
    PENDING = "pending"
    SENT = "sent"


def parse_timestamp(value) -> datetime:
    """ISO-8601 string from the server (trailing Z allowed) to aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class LocalMessage:
    """
    A message as the client shows it.

    id is a provisional "tmp-..." string while PENDING and the server's
    durable id once SENT.
    """

    id: int | str
    sender_id: str
    recipient_id: str
    content: str
    timestamp: datetime
    state: MessageState = MessageState.SENT
    read: bool = False
    client_id: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.state is MessageState.PENDING

    @classmethod
    def from_payload(cls, payload: dict) -> LocalMessage:
        """Build a SENT message from the server's wire form."""
        return cls(
            id=payload["id"],
            sender_id=str(payload["from"]),
            recipient_id=str(payload["to"]),
            content=payload["content"],
            timestamp=parse_timestamp(payload["timestamp"]),
            state=MessageState.SENT,
            read=bool(payload.get("read", False)),
            client_id=payload.get("client_id"),
        )

    def sort_key(self):
        return (self.timestamp, self.id)


# =============================================================================
# Conversation view
# =============================================================================


class ConversationView:
    """
    Ordered local view of the conversation between `me` and `partner`.

    Durable messages are ordered by (timestamp, id); pending messages follow
    in the order they were added. Failed sends are removed and their errors
    kept in `errors` for the UI.

    Attributes:
        me: Current user's identity key
        partner: The other user's identity key
        in_flight: Registry shared with other views of the same session
        tolerance: Seconds within which a pending message and a push with
            the same sender and content are treated as one message
        errors: (provisional_id, error) pairs for failed sends, oldest first
    """

    def __init__(
        self,
        me: str,
        partner: str,
        in_flight: InFlightRegistry | None = None,
        tolerance: float = CLIENT_CONFIG.DEDUPE_TOLERANCE_SECONDS,
    ):
        self.me = str(me)
        self.partner = str(partner)
        self.in_flight = in_flight if in_flight is not None else InFlightRegistry()
        self.tolerance = tolerance
        self.errors: list[tuple[str, str]] = []
        self._entries: list[LocalMessage] = []

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    @property
    def messages(self) -> list[LocalMessage]:
        durable = sorted((m for m in self._entries if not m.is_pending), key=LocalMessage.sort_key)
        pending = [m for m in self._entries if m.is_pending]
        return durable + pending

    @property
    def pending(self) -> list[LocalMessage]:
        return [m for m in self._entries if m.is_pending]

    def get(self, message_id) -> LocalMessage | None:
        for message in self._entries:
            if message.id == message_id:
                return message
        return None

    def involves(self, sender_id, recipient_id) -> bool:
        """Whether a message between these two users belongs in this view."""
        return {str(sender_id), str(recipient_id)} == {self.me, self.partner}

    # -------------------------------------------------------------------------
    # Local changes
    # -------------------------------------------------------------------------

    def add_pending(self, content: str) -> LocalMessage:
        """Render an outgoing message immediately, before the server stores it."""
        message = LocalMessage(
            id=f"{CLIENT_CONFIG.PROVISIONAL_PREFIX}{uuid.uuid4()}",
            sender_id=self.me,
            recipient_id=self.partner,
            content=content,
            timestamp=datetime.now(timezone.utc),
            state=MessageState.PENDING,
        )
        self._entries.append(message)
        self.in_flight.add(message.id)
        return message

    def confirm(self, provisional_id: str, payload: dict) -> LocalMessage:
        """
        Acknowledgement path: swap a provisional entry for the stored message.

        Safe in either order with the push echo; whichever arrives second
        finds the durable id already present and changes nothing.
        """
        durable = LocalMessage.from_payload(payload)
        self.in_flight.evict(provisional_id)

        existing = self.get(durable.id)
        if existing is not None:
            self._remove(provisional_id)
            return existing

        index = self._index_of(provisional_id)
        if index is None:
            self._entries.append(durable)
        else:
            self._entries[index] = durable
        return durable

    def fail(self, provisional_id: str, error: str) -> LocalMessage | None:
        """Roll back a send the server refused. Returns the removed entry."""
        self.in_flight.evict(provisional_id)
        removed = self._remove(provisional_id)
        self.errors.append((provisional_id, error))
        logger.info("Send %s failed: %s", provisional_id, error)
        return removed

    def mark_read(self, message_id) -> bool:
        """Apply a read receipt. Returns False if the message isn't in view."""
        message = self.get(message_id)
        if message is None:
            return False
        message.read = True
        return True

    # -------------------------------------------------------------------------
    # Server input
    # -------------------------------------------------------------------------

    def apply_push(self, payload: dict) -> LocalMessage | None:
        """
        Merge a receiveMessage push.

        Returns:
            The entry now representing the message, or None if the push is
            for another conversation.
        """
        durable = LocalMessage.from_payload(payload)
        if not self.involves(durable.sender_id, durable.recipient_id):
            return None

        existing = self.get(durable.id)
        if existing is not None:
            existing.read = existing.read or durable.read
            return existing

        match = self._find_provisional(durable)
        if match is not None:
            self.in_flight.evict(match.id)
            self._entries[self._index_of(match.id)] = durable
            return durable

        self._entries.append(durable)
        return durable

    def load_history(self, payloads: list[dict]) -> None:
        """
        Merge the server's history into the view.

        History is authoritative for every message it contains. Durable
        entries it does not contain arrived by push after the snapshot was
        taken and are kept. Pending entries the history already contains
        (matched by client_id) are dropped; the rest stay pending after the
        durable messages.
        """
        durable = [LocalMessage.from_payload(p) for p in payloads]
        durable = [m for m in durable if self.involves(m.sender_id, m.recipient_id)]
        stored_ids = {m.id for m in durable}
        stored_client_ids = {m.client_id for m in durable if m.client_id}

        pushed_since = []
        still_pending = []
        for message in self._entries:
            if not message.is_pending:
                if message.id not in stored_ids:
                    pushed_since.append(message)
                    stored_ids.add(message.id)
            elif message.id in stored_client_ids:
                self.in_flight.evict(message.id)
            else:
                still_pending.append(message)

        self._entries = durable + pushed_since + still_pending

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _find_provisional(self, durable: LocalMessage) -> LocalMessage | None:
        if durable.client_id:
            for message in self.pending:
                if message.id == durable.client_id:
                    return message

        for message in self.pending:
            if (
                message.id in self.in_flight
                and message.sender_id == durable.sender_id
                and message.content == durable.content
                and abs((message.timestamp - durable.timestamp).total_seconds()) <= self.tolerance
            ):
                return message
        return None

    def _index_of(self, message_id) -> int | None:
        for index, message in enumerate(self._entries):
            if message.id == message_id:
                return index
        return None

    def _remove(self, message_id) -> LocalMessage | None:
        index = self._index_of(message_id)
        if index is None:
            return None
        return self._entries.pop(index)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ConversationView(me={self.me!r}, partner={self.partner!r}, messages={len(self)})"

