"""
Client-side tunables.

Import example:
    from chatclient.constants import CLIENT_CONFIG
"""

from typing import Final


class CLIENT_CONFIG:
    """Configuration for the chat client."""

    # Provisional ids for optimistic messages: "tmp-<uuid4>"
    PROVISIONAL_PREFIX: Final[str] = "tmp-"

    # In-flight provisional ids
    IN_FLIGHT_TTL_SECONDS: Final[float] = 5.0
    IN_FLIGHT_MAX_SIZE: Final[int] = 256

    # Max distance between a provisional timestamp and the server timestamp
    # for an echo to count as the same message
    DEDUPE_TOLERANCE_SECONDS: Final[float] = 10.0

    # Typing indicator stays on this long after the last signal
    TYPING_WINDOW_SECONDS: Final[float] = 2.0

    # Transport
    ACK_TIMEOUT_SECONDS: Final[float] = 10.0
    RECONNECT_ATTEMPTS: Final[int] = 5
    RECONNECT_DELAY_SECONDS: Final[float] = 1.0
    WS_PATH: Final[str] = "/ws/chat/"
    API_PREFIX: Final[str] = "/api/v1"
