"""Error Hierarchy — typed, categorized exceptions for every wiki failure mode.

Invariants:
    - Every error has a code (ErrorCode), failure_code (int), category, severity
    - Dispatch errors (400-level) mean the request was malformed; infrastructure errors are 5xx
    - A failed bus reply carries the WikiError instance itself (code + message)
    - All errors are terminal for the current request — nothing is retried internally

Design Decisions:
    - Single hierarchy with WikiError base: FastAPI global handler catches all
    - failure_code mirrors ErrorCode order so bus replies carry a stable integer
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    DISPATCH = "dispatch"
    VALIDATION = "validation"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    MESSAGING = "messaging"
    INTERNAL = "internal"


class ErrorCode(str, Enum):
    """Failure codes carried by bus replies. Order defines failure_code."""
    NO_ACTION_SPECIFIED = "NO_ACTION_SPECIFIED"
    BAD_ACTION = "BAD_ACTION"
    DB_ERROR = "DB_ERROR"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    BACKUP_FAILED = "BACKUP_FAILED"
    NO_CONSUMER = "NO_CONSUMER"
    REPLY_TIMEOUT = "REPLY_TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def failure_code(self) -> int:
        return list(ErrorCode).index(self)


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    action: str | None = None
    address: str | None = None
    page_title: str | None = None
    debug_info: dict[str, Any] | None = None


class WikiError(Exception):
    """Base exception for all wiki errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    @property
    def failure_code(self) -> int:
        return self.code.failure_code

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code.value,
                "failure_code": self.failure_code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "action": self.context.action,
                    "address": self.context.address,
                    "page_title": self.context.page_title,
                },
            }
        }


# ─── Dispatch Errors (400-level) ────────────────────────────────

class NoActionSpecifiedError(WikiError):
    """Envelope is missing the action discriminator."""
    def __init__(self, message: str = "No action header specified", context: ErrorContext | None = None):
        super().__init__(
            message, ErrorCode.NO_ACTION_SPECIFIED, ErrorCategory.DISPATCH,
            ErrorSeverity.ERROR, context, 400,
        )


class BadActionError(WikiError):
    """Action present but not one of the known operations."""
    def __init__(self, action: str, context: ErrorContext | None = None):
        super().__init__(
            f"Bad action: {action}", ErrorCode.BAD_ACTION, ErrorCategory.DISPATCH,
            ErrorSeverity.ERROR, context, 400,
        )
        self.action = action


class InvalidPayloadError(WikiError):
    """Action payload is missing fields or has the wrong types."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, ErrorCode.INVALID_PAYLOAD, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(WikiError):
    """Storage layer failed: statement, connectivity, pool exhaustion, or timeout."""
    def __init__(self, message: str, operation: str = "unknown", context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            ErrorCode.DB_ERROR, ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class BackupError(WikiError):
    """External backup service rejected the export or was unreachable."""
    def __init__(self, message: str, status_code: int | None = None, context: ErrorContext | None = None):
        super().__init__(
            f"Could not backup the wiki: {message}",
            ErrorCode.BACKUP_FAILED, ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )
        self.status_code = status_code


class NoConsumerError(WikiError):
    """No consumer registered on the requested bus address."""
    def __init__(self, address: str, context: ErrorContext | None = None):
        super().__init__(
            f"No consumer registered for address '{address}'",
            ErrorCode.NO_CONSUMER, ErrorCategory.MESSAGING,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.address = address


class ReplyTimeoutError(WikiError):
    """Consumer did not reply within the request timeout."""
    def __init__(self, address: str, timeout: float, context: ErrorContext | None = None):
        super().__init__(
            f"No reply from '{address}' within {timeout}s",
            ErrorCode.REPLY_TIMEOUT, ErrorCategory.MESSAGING,
            ErrorSeverity.CRITICAL, context, 504,
        )
        self.address = address


class InternalError(WikiError):
    """Unexpected failure inside a consumer — details stay in the logs."""
    def __init__(self, message: str = "An unexpected error occurred", context: ErrorContext | None = None):
        super().__init__(
            message, ErrorCode.INTERNAL_ERROR, ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )


# ─── Startup Errors ─────────────────────────────────────────────

class QueryCatalogError(Exception):
    """Query resource missing, unreadable, or incomplete. Fatal at startup."""

