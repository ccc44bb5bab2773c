"""
Error Hierarchy - Every failure the move pipeline can report.

All custom exceptions inherit from DropFourError so callers can catch the
whole family at once. Where each kind is raised and who handles it:

- ValidationError: malformed submission, raised by the scheduler at submit time
- RateLimitError: HTTP 429 from the inference endpoint (the only retryable kind)
- NetworkError: any other transport or HTTP failure
- ParseError: a successful response that does not carry a usable move
- QueueTimeoutError / QueueExpiredError: entry dropped before it was serviced
- AbortError: cooperative cancellation, never shown to the player
- SessionNotFoundError / InvalidMoveError: game service rejections, mapped to HTTP errors

The board engine never raises; it signals bad input with sentinel values.

Usage:
    from dropfour.errors import RateLimitError, DropFourError

    try:
        response = await scheduler.submit(payload, category="connect4")
    except RateLimitError as e:
        logger.info(f"Backing off: {e.message}")
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "AbortError",
    "ConfigurationError",
    "DropFourError",
    "InvalidMoveError",
    "NetworkError",
    "ParseError",
    "QueueError",
    "QueueExpiredError",
    "QueueTimeoutError",
    "RateLimitError",
    "SessionNotFoundError",
    "ValidationError",
]


class DropFourError(Exception):
    """Base exception for all dropfour errors.

    Attributes:
        code: Machine-readable error code for categorization
        message: Human-readable error description
        context: Additional context for debugging
        retryable: Whether the remote call may be attempted again
    """
    code: str = "DROPFOUR_ERROR"
    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ConfigurationError(DropFourError):
    """Settings could not be loaded or failed validation."""
    code: str = "CONFIGURATION_ERROR"


class ValidationError(DropFourError):
    """Submission rejected before it was queued. Never retried."""
    code: str = "VALIDATION_ERROR"


# =============================================================================
# Remote call errors
# =============================================================================


class RateLimitError(DropFourError):
    """The inference endpoint answered 429.

    Triggers bounded exponential backoff in the decision engine.
    """
    code: str = "RATE_LIMITED"
    retryable: bool = True

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        status: int = 429,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.status = status
        self.context["status"] = status


class NetworkError(DropFourError):
    """Transport failure or a non-2xx, non-429 response."""
    code: str = "NETWORK_ERROR"

    def __init__(
        self,
        message: str,
        status: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.status = status
        if status is not None:
            self.context["status"] = status


class ParseError(DropFourError):
    """The response arrived but held no valid, playable column."""
    code: str = "PARSE_ERROR"

    def __init__(
        self,
        message: str,
        raw: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.raw = raw


# =============================================================================
# Queue errors
# =============================================================================


class QueueError(DropFourError):
    """Base class for entries removed from a queue before dispatch."""
    code: str = "QUEUE_ERROR"

    def __init__(
        self,
        message: str,
        request_id: str | None = None,
        category: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.request_id = request_id
        self.category = category
        if request_id:
            self.context["request_id"] = request_id
        if category:
            self.context["category"] = category


class QueueTimeoutError(QueueError):
    """The entry's own timeout fired while it was still queued."""
    code: str = "QUEUE_TIMEOUT"


class QueueExpiredError(QueueError):
    """The background sweep removed an entry older than the age ceiling."""
    code: str = "QUEUE_EXPIRED"


class AbortError(DropFourError):
    """Cooperative cancellation. Discarded silently by every caller."""
    code: str = "ABORTED"


# =============================================================================
# Game service errors
# =============================================================================


class SessionNotFoundError(DropFourError):
    """No live session with the given id."""
    code: str = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} not found", context={"session_id": session_id})
        self.session_id = session_id


class InvalidMoveError(DropFourError):
    """Human move rejected: column not playable, or not the human's turn."""
    code: str = "INVALID_MOVE"
