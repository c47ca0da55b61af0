"""
Client exception hierarchy.

Exception Hierarchy:
    ChatClientError (base)
    ├── TransportError - Socket down, closed mid-request, or ack timed out
    ├── SendFailedError - The server acknowledged a frame as failed
    └── ApiError - A REST call returned an error status

Usage:
    try:
        await session.send("hi")
    except SendFailedError as e:
        show_toast(e.message)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class ChatClientError(Exception):
    """
    Base exception for client errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code, usually the server's
        details: Extra context (field errors, status codes)
    """

    default_error_code: str = "CLIENT_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class TransportError(ChatClientError):
    """
    The WebSocket could not carry the frame or its acknowledgement.

    The server may or may not have seen the frame; an optimistic message
    stays pending until history or an echo settles it.
    """

    default_error_code: str = "TRANSPORT_ERROR"


class SendFailedError(ChatClientError):
    """The server rejected a frame (ack with ok=false)."""

    default_error_code: str = "SEND_FAILED"


class ApiError(ChatClientError):
    """A REST call failed. status holds the HTTP status code."""

    default_error_code: str = "API_ERROR"

    def __init__(self, message: str, status: int, error_code: str | None = None, details=None):
        self.status = status
        super().__init__(message, error_code=error_code, details=details)
