"""Error Hierarchy — typed, categorized exceptions for all Ganamos failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the {"success": false, "error": ...} envelope every route uses
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with GanamosError base: one global handler catches all (ADR: uniform error shape)
    - `extra` carries route-specific fields (currentCoins, retryAfter, ...) merged into the envelope
    - OAuthError overrides to_response(): RFC 6749 clients expect {"error", "error_description"}
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
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    RATE_LIMIT = "rate_limit"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    device_id: str | None = None
    user_id: str | None = None
    debug_info: dict[str, Any] | None = None


class GanamosError(Exception):
    """Base exception for all Ganamos errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        extra: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.extra = extra or {}

    def to_response(self) -> dict:
        """Convert to the standard JSON error envelope."""
        return {"success": False, "error": self.message, **self.extra}


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidRequestError(GanamosError):
    """Request is missing fields or carries invalid values."""
    def __init__(
        self, message: str, context: ErrorContext | None = None, **extra: Any,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400, extra,
        )


class InsufficientFundsError(GanamosError):
    """Balance (sats or pet coins) is below the requested amount."""
    def __init__(
        self, message: str, context: ErrorContext | None = None, **extra: Any,
    ):
        super().__init__(
            message, "INSUFFICIENT_FUNDS", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 400, extra,
        )


class AuthenticationError(GanamosError):
    """Caller is not authenticated or the token is invalid."""
    def __init__(self, message: str = "Unauthorized", context: ErrorContext | None = None):
        super().__init__(
            message, "UNAUTHORIZED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class PermissionDeniedError(GanamosError):
    """Caller is authenticated but may not act on the resource."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, context, 403,
        )


class MockModeDisabledError(GanamosError):
    """Mock endpoint hit while USE_MOCKS is off."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Mock mode is not enabled. Set USE_MOCKS=true",
            "MOCK_MODE_DISABLED", ErrorCategory.PERMISSION,
            ErrorSeverity.INFO, context, 403,
        )


class ResourceNotFoundError(GanamosError):
    """Requested resource does not exist (or is not visible to the caller)."""
    def __init__(
        self, message: str, context: ErrorContext | None = None, **extra: Any,
    ):
        super().__init__(
            message, "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404, extra,
        )


class ConflictError(GanamosError):
    """Resource is owned by someone else or already in the requested state."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class RateLimitExceededError(GanamosError):
    """Fixed-window rate limit refused the request."""
    def __init__(
        self,
        retry_after: int,
        message: str = "Rate limit exceeded. Please try again later.",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message,
            "RATE_LIMITED", ErrorCategory.RATE_LIMIT,
            ErrorSeverity.WARNING, context, 429,
            {"retryAfter": retry_after},
        )
        self.retry_after = retry_after


class OAuthError(GanamosError):
    """OAuth 2.0 token/authorize endpoint error (RFC 6749 §5.2 shape)."""
    def __init__(
        self,
        error: str,
        description: str,
        http_status: int = 400,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            description, error.upper(), ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, http_status,
        )
        self.error = error

    def to_response(self) -> dict:
        return {"error": self.error, "error_description": self.message}


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(GanamosError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class UpstreamAPIError(GanamosError):
    """Call to the Ganamos API (or another upstream) failed."""
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Upstream API error ({status_code or 'network'}): {message}",
            "UPSTREAM_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )
        self.status_code = status_code
