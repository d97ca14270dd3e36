"""Error Hierarchy — typed, categorized exceptions for all Vouch failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with VouchError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    worker_id: str | None = None
    reference_id: str | None = None
    community_id: str | None = None
    debug_info: dict[str, Any] | None = None


class VouchError(Exception):
    """Base exception for all Vouch errors."""

    def __init__(
        self,
        message: str,
        code: str,
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

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "user_id": self.context.user_id,
                    "worker_id": self.context.worker_id,
                    "reference_id": self.context.reference_id,
                    "community_id": self.context.community_id,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class AuthenticationRequiredError(VouchError):
    """Request arrived without the identity header set by the auth gateway."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authenticated user identity is required",
            "AUTHENTICATION_REQUIRED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 401,
        )


class UnauthorizedError(VouchError):
    """Caller lacks the membership, ownership or admin role the operation needs."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "UNAUTHORIZED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class BookingNotCompletedError(VouchError):
    """References can only be written for completed bookings."""
    def __init__(self, booking_id: str, status: str, context: ErrorContext | None = None):
        super().__init__(
            f"Booking '{booking_id}' is {status}; references require a completed booking",
            "BOOKING_NOT_COMPLETED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 409,
        )
        self.booking_id = booking_id
        self.status = status


class DuplicateReferenceError(VouchError):
    """A reference already exists for this author and booking."""
    def __init__(self, booking_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"A reference for booking '{booking_id}' has already been submitted",
            "DUPLICATE_REFERENCE", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.booking_id = booking_id


class ReferenceLockedError(VouchError):
    """Edit window elapsed — the reference is now immutable."""
    def __init__(self, window_hours: int, context: ErrorContext | None = None):
        super().__init__(
            f"References can only be edited within {window_hours} hours of submission",
            "REFERENCE_LOCKED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 409,
        )
        self.window_hours = window_hours


class InvalidDisputeTransitionError(VouchError):
    """Dispute status change not allowed from the current status."""
    def __init__(self, current: str, target: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot move dispute status from '{current}' to '{target}'",
            "INVALID_DISPUTE_TRANSITION", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.current = current
        self.target = target


class InvalidCodeError(VouchError):
    """Verification code missing or does not match."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Verification code is invalid",
            "INVALID_CODE", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class CodeExpiredError(VouchError):
    """Verification code matched but is past its time-to-live."""
    def __init__(self, ttl_hours: int, context: ErrorContext | None = None):
        super().__init__(
            f"Verification code expired (valid for {ttl_hours} hours). Request a new one.",
            "CODE_EXPIRED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 410,
        )
        self.ttl_hours = ttl_hours


class RatingValidationError(VouchError):
    """Rating or sub-rating outside the 1–5 scale."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class ResourceNotFoundError(VouchError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(VouchError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class NotificationError(VouchError):
    """Outbound notification delivery failed after retries."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Notification delivery failed: {message}",
            "NOTIFICATION_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, context, 502,
        )
