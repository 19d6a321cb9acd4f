"""Exception classes for queue sync errors.

Provides structured error handling with error codes and user-facing messages.
Guard rejections and "already in queue" style no-ops are not errors; they are
returned as results by the mutation controller.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for sync errors."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"

    # Command errors
    COMMAND_FAILED = "COMMAND_FAILED"
    COMMAND_UNREACHABLE = "COMMAND_UNREACHABLE"

    # Poll errors
    RATE_LIMITED = "RATE_LIMITED"
    SNAPSHOT_FETCH_FAILED = "SNAPSHOT_FETCH_FAILED"

    # Stream errors
    STREAM_CONNECT_FAILED = "STREAM_CONNECT_FAILED"
    STREAM_CLOSED = "STREAM_CLOSED"


class SyncError(Exception):
    """Base exception for queue sync errors.

    Attributes:
        code: Error code for programmatic handling
        message: User-facing error message
        details: Additional error details
        recoverable: Whether the layer recovers on its own (reconnect, retry)
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        self.code = code if isinstance(code, str) else code.value
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "errorCode": self.code,
            "errorMessage": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# Command Errors
# =============================================================================


class CommandError(SyncError):
    """Raised when the server rejects (or never answers) a queue command.

    ``message`` carries the server's ``{"error": ...}`` text when there is one.
    """

    def __init__(
        self,
        command: str,
        queue_id: str,
        message: str,
        status_code: int | None = None,
    ):
        super().__init__(
            code=ErrorCode.COMMAND_FAILED if status_code is not None else ErrorCode.COMMAND_UNREACHABLE,
            message=message,
            details={
                "command": command,
                "queueId": queue_id,
                "statusCode": status_code,
            },
            recoverable=False,
        )
        self.command = command
        self.queue_id = queue_id
        self.status_code = status_code


# =============================================================================
# Poll Errors
# =============================================================================


class RateLimitedError(SyncError):
    """Raised when the poll endpoint answers 429."""

    def __init__(self, retry_after: float | None = None):
        super().__init__(
            code=ErrorCode.RATE_LIMITED,
            message="Poll endpoint is rate limiting this client",
            details={"retryAfter": retry_after},
        )
        self.retry_after = retry_after


class SnapshotFetchError(SyncError):
    """Raised when a poll request fails or returns an unusable body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(
            code=ErrorCode.SNAPSHOT_FETCH_FAILED,
            message=message,
            details={"statusCode": status_code},
        )
        self.status_code = status_code


# =============================================================================
# Stream Errors
# =============================================================================


class StreamConnectError(SyncError):
    """Raised when the push stream cannot be opened."""

    def __init__(self, url: str, status_code: int | None = None, reason: str = ""):
        message = f"Could not open event stream at {url}"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        if reason:
            message += f": {reason}"
        super().__init__(
            code=ErrorCode.STREAM_CONNECT_FAILED,
            message=message,
            details={"url": url, "statusCode": status_code},
        )


class StreamClosedError(SyncError):
    """Raised when the server ends the push stream."""

    def __init__(self, url: str):
        super().__init__(
            code=ErrorCode.STREAM_CLOSED,
            message=f"Event stream at {url} was closed by the server",
            details={"url": url},
        )


class MessageParseError(SyncError):
    """Raised when an inbound push message has an unknown shape or bad JSON."""

    def __init__(self, reason: str, raw: str | None = None):
        super().__init__(
            code=ErrorCode.INVALID_PAYLOAD,
            message=f"Unparseable push message: {reason}",
            details={"raw": raw[:200] if raw else None},
        )
