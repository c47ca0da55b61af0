"""
Constants and configuration for the chat core.

This module centralizes configuration values for:
- Message content limits
- Presence bookkeeping (cache keys, TTLs)
- Transport event names and error codes

Import example:
    from chat.constants import MESSAGE_CONFIG, PRESENCE_CONFIG, TRANSPORT_EVENTS
"""

from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits (after trimming)
    MAX_CONTENT_LENGTH: Final[int] = 10000  # Characters
    MIN_CONTENT_LENGTH: Final[int] = 1

    # Provisional ids echoed back to the sending client (e.g. "tmp-<uuid4>")
    MAX_CLIENT_ID_LENGTH: Final[int] = 64


# =============================================================================
# Presence Configuration
# =============================================================================


class PRESENCE_CONFIG:
    """Configuration for presence tracking."""

    # Channel layer group for every live connection of one user
    ROOM_PREFIX: Final[str] = "user_"

    # Cache key prefixes
    KEY_PREFIX_CONNECTION: Final[str] = "presence:conn"  # channel name -> user id
    KEY_PREFIX_USER: Final[str] = "presence:user"  # user id -> [channel names]

    # Upper bound on how long bookkeeping survives a worker that died without
    # running disconnect; re-joining refreshes it
    CONNECTION_TTL_SECONDS: Final[int] = 24 * 60 * 60


# =============================================================================
# Transport Events
# =============================================================================


class TRANSPORT_EVENTS:
    """Event names carried in the "event" field of WebSocket frames."""

    # Client -> server
    JOIN: Final[str] = "join"
    SEND_MESSAGE: Final[str] = "sendMessage"
    TYPING: Final[str] = "typing"
    MARK_READ: Final[str] = "markRead"

    # Server -> client
    RECEIVE_MESSAGE: Final[str] = "receiveMessage"
    MESSAGE_READ: Final[str] = "messageRead"
    ACK: Final[str] = "ack"
    ERROR: Final[str] = "error"

    # Channel layer message type handled by ChatConsumer.chat_event
    LAYER_TYPE: Final[str] = "chat.event"


class TRANSPORT_ERRORS:
    """Error codes produced by the WebSocket consumer itself."""

    INVALID_FRAME: Final[str] = "INVALID_FRAME"
    INVALID_PAYLOAD: Final[str] = "INVALID_PAYLOAD"
    UNKNOWN_EVENT: Final[str] = "UNKNOWN_EVENT"
    NOT_JOINED: Final[str] = "NOT_JOINED"
    IDENTITY_MISMATCH: Final[str] = "IDENTITY_MISMATCH"
    UNKNOWN_USER: Final[str] = "UNKNOWN_USER"


# WebSocket close codes (application range 4000-4999)
CLOSE_UNAUTHENTICATED: Final[int] = 4001
