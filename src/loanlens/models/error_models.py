"""
Error taxonomy for the LoanLens session engine.

Every exception carries an ErrorCode for categorization in logs. Completion
failures (ApiError, TransportError, RequestCancelledError) are converted into
assistant messages by the SessionController and never escape a turn.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Application-specific error codes for categorization."""

    # Validation errors (2xxx)
    VALIDATION_ERROR = "VAL_2001"
    VALIDATION_EMPTY_INPUT = "VAL_2002"
    VALIDATION_TURN_IN_FLIGHT = "VAL_2003"

    # Session errors (4xxx)
    CHAT_NOT_FOUND = "SES_4001"

    # External service errors (7xxx)
    EXTERNAL_SERVICE_ERROR = "EXT_7001"
    EXTERNAL_TIMEOUT = "EXT_7002"
    EXTERNAL_TRANSPORT_ERROR = "EXT_7003"
    EXTERNAL_MALFORMED_CHUNK = "EXT_7004"
    EXTERNAL_CANCELLED = "EXT_7005"

    # Persistence errors (8xxx)
    PERSISTENCE_ERROR = "DB_8001"


class LoanLensError(Exception):
    """Base exception for the session engine."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR


class ValidationError(LoanLensError):
    """Rejected user input (empty input, turn already in flight).

    Silently absorbed by the controller; never shown to the user.
    """

    def __init__(self, message: str, code: ErrorCode = ErrorCode.VALIDATION_ERROR):
        super().__init__(message)
        self.code = code


class NotFoundError(LoanLensError):
    """Operation referenced a chat id that is not in the collection."""

    code = ErrorCode.CHAT_NOT_FOUND

    def __init__(self, chat_id: str):
        super().__init__(f"Chat not found: {chat_id}")
        self.chat_id = chat_id


class CompletionError(LoanLensError):
    """Base class for failures of a single completion request."""

    code = ErrorCode.EXTERNAL_SERVICE_ERROR

    @property
    def reason(self) -> str:
        """Human-readable reason embedded in the assistant error message."""
        return str(self)


class ApiError(CompletionError):
    """Provider answered with a non-2xx status (or an unreadable body)."""

    code = ErrorCode.EXTERNAL_SERVICE_ERROR

    def __init__(self, status: int, detail: str | None = None):
        message = f"API Error: {status}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.status = status
        self.detail = detail


class TransportError(CompletionError):
    """Network or connection failure before a response completed."""

    code = ErrorCode.EXTERNAL_TRANSPORT_ERROR

    def __init__(self, reason: str, timeout: bool = False):
        super().__init__(f"Network error: {reason}")
        self.transport_reason = reason
        self.timeout = timeout
        if timeout:
            self.code = ErrorCode.EXTERNAL_TIMEOUT


class RequestCancelledError(CompletionError):
    """The in-flight request was cancelled through its CancellationToken."""

    code = ErrorCode.EXTERNAL_CANCELLED

    def __init__(self, reason: str | None = None):
        super().__init__(f"Request cancelled: {reason}" if reason else "Request cancelled")
        self.cancel_reason = reason


class MalformedStreamChunk(LoanLensError):
    """A single SSE data line that is not a valid completion chunk.

    Raised and absorbed inside the CompletionClient; never propagated.
    """

    code = ErrorCode.EXTERNAL_MALFORMED_CHUNK

    def __init__(self, payload: str, error: str):
        super().__init__(f"Malformed stream chunk: {error}")
        self.payload = payload


class PersistenceError(LoanLensError):
    """Reading or writing the key-value store failed."""

    code = ErrorCode.PERSISTENCE_ERROR
