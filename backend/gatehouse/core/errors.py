"""Error Hierarchy: typed, categorized exceptions for all Gatehouse failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (4xx) are raised before commit; the transaction is always rolled back
    - GateConflictError is the only retryable domain error (envelope carries retryable=True)
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with GatehouseError base: FastAPI global handler catches all
    - ErrorContext as dataclass: carries event/user/gate identifiers for log records
"""

from dataclasses import dataclass, field
from enum import Enum
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
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHORIZATION = "authorization"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Identifiers attached to an error for logs and the response envelope."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str | None = None
    user_id: str | None = None
    gate_id: str | None = None
    role: str | None = None


class GatehouseError(Exception):
    """Base exception for all Gatehouse errors."""

    retryable: bool = False

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
                "retryable": self.retryable,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "event_id": self.context.event_id,
                    "user_id": self.context.user_id,
                    "gate_id": self.context.gate_id,
                    "role": self.context.role,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class EventNotFoundError(GatehouseError):
    """Referenced event does not exist."""
    def __init__(self, event_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Event '{event_id}' not found",
            "EVENT_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class EventNotOpenError(GatehouseError):
    """Self-service join attempted on an event that is not published."""
    def __init__(self, status: str, context: ErrorContext | None = None):
        super().__init__(
            f"Event is not open for participation (status: {status})",
            "EVENT_NOT_OPEN", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.status = status


class UserNotFoundError(GatehouseError):
    """Pilot id does not match any user account."""
    def __init__(self, user_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"User '{user_id}' not found",
            "USER_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.user_id = user_id


class AlreadyJoinedError(GatehouseError):
    """User is already a participant of the event."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "User is already participating in this event",
            "ALREADY_JOINED", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class NotParticipantError(GatehouseError):
    """Leave/assign attempted for a user who has not joined."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "User is not participating in this event",
            "NOT_PARTICIPANT", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 404,
        )


class InvalidGateError(GatehouseError):
    """Gate does not belong to the event or does not match the requested role."""
    def __init__(self, gate_id: str, role: str, context: ErrorContext | None = None):
        super().__init__(
            f"Gate '{gate_id}' is not a {role} gate of this event",
            "INVALID_GATE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.gate_id = gate_id
        self.role = role


class GateConflictError(GatehouseError):
    """Requested gate is held by another participant. Retry with a fresh snapshot."""

    retryable = True

    def __init__(self, gate_id: str | None, role: str, context: ErrorContext | None = None):
        target = f"Gate '{gate_id}'" if gate_id else f"A {role} gate"
        super().__init__(
            f"{target} is already assigned to another participant",
            "GATE_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.gate_id = gate_id
        self.role = role


class AccessDeniedError(GatehouseError):
    """Staff operation attempted without the event-management capability."""
    def __init__(self, capability: str, context: ErrorContext | None = None):
        super().__init__(
            f"Access denied. Required capability: {capability}",
            "ACCESS_DENIED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context, 403,
        )
        self.capability = capability


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(GatehouseError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
