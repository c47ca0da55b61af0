"""
Base exception classes for application-wide error handling.

The message store and the collaborator services raise these; the delivery
router and views turn them into ServiceResult failures, HTTP responses, or
WebSocket acknowledgements. None of them are fatal to the process.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Bad input (empty content, unknown users, missing fields)
    ├── NotFoundError - Resource not found
    ├── AuthorizationError - Caller may not perform the operation
    ├── ConflictError - State conflicts (duplicate friend requests, etc.)
    └── PersistenceError - The store could not durably record a write

Usage:
    from core.exceptions import ValidationError, AuthorizationError

    raise ValidationError("Message content cannot be empty", error_code="EMPTY_CONTENT")

    try:
        MessageStore.mark_read(message_id, reader_id)
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, etc.)
        http_status: Status code used when the error reaches a REST view
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

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

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API and WebSocket responses.

        Example:
            {
                "error": "Message content cannot be empty",
                "error_code": "EMPTY_CONTENT",
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for:
    - Empty or whitespace-only message content
    - Identity keys that do not resolve to active users
    - Missing required fields in event payloads

    Note:
        For DRF serializer validation, use DRF's built-in validation.
        Use this for service-layer validation logic.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource does not exist."""

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class AuthorizationError(BaseApplicationError):
    """
    Raised when the caller lacks permission for an operation.

    Use for:
    - Marking a message read that was addressed to someone else
    - Messaging a user without an accepted friendship
    - Responding to a friend request addressed to someone else

    Note:
        For authentication failures (missing/invalid token), DRF raises
        NotAuthenticated. Use this for authorization failures.
    """

    default_error_code: str = "AUTHORIZATION_ERROR"
    http_status: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when operation conflicts with current resource state.

    Example:
        if FriendRequest.objects.filter(from_user=a, to_user=b).exists():
            raise ConflictError("Friend request already sent", error_code="ALREADY_SENT")
    """

    default_error_code: str = "CONFLICT"


class PersistenceError(BaseApplicationError):
    """
    Raised when the store is unavailable or a write fails.

    The send-intent that triggered it is acknowledged as failed. There is no
    retry inside the server; the client may resend with a new provisional id.
    """

    default_error_code: str = "PERSISTENCE_ERROR"
    http_status: int = 503
