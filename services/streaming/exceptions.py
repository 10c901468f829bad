"""
Streaming-specific exceptions.

Provides specific exception types for the streaming session lifecycle,
enabling better error messages and logging.
"""

from typing import Optional


class StreamingError(Exception):
    """Base exception for streaming session errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[dict] = None):
        """
        Initialize streaming error.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional context (state, event, etc.)
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}


class TransportFailure(StreamingError):
    """Raised when the transport gives up after exhausting its retries."""

    def __init__(self, cause: Optional[BaseException] = None, message: Optional[str] = None):
        super().__init__(
            message or (str(cause) if cause is not None and str(cause) else "Streaming transport failed"),
            error_code="TRANSPORT_FAILURE",
            context={"cause": type(cause).__name__ if cause is not None else None}
        )
        self.cause = cause


class InvalidTransitionError(StreamingError):
    """Raised when an event is not allowed in the current session state."""

    def __init__(self, current: str, target: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot move from {current} to {target}",
            error_code="INVALID_TRANSITION",
            context={"current": current, "target": target}
        )
        self.current = current
        self.target = target
