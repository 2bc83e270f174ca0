"""Source-level exception hierarchy for the Jira sync pipeline.

These exceptions describe *what* went wrong: an authentication failure,
a rate limit, a broken payload, a bad record, a failed transaction.
Use cases wrap them into operation-level errors (see
``sync.use_cases.errors``) that describe *which* operation failed.

Exception Hierarchy:
    JiraSyncError (base)
    ├── ConfigurationError (unrecoverable - fix config)
    ├── AuthenticationError (fatal - do not retry)
    ├── APIError
    │   ├── RateLimitError (retryable, carries retry_after)
    │   ├── NotFoundError
    │   ├── BadRequestError
    │   └── ServerError (transient)
    ├── NetworkError (transient)
    │   ├── ConnectionError
    │   └── TimeoutError
    ├── CircuitOpenError (transient)
    ├── MalformedPayloadError (fatal for one batch)
    ├── RecordValidationError (fatal for one record)
    │   ├── InvalidIdentifierError
    │   ├── InvalidFormatError
    │   ├── UnknownCategoryError
    │   ├── MissingFieldError
    │   ├── PageNumberError
    │   └── PageSizeError
    └── DatabaseError
        ├── ConnectionPoolError
        ├── PersistError
        ├── QueryError
        ├── TransactionError
        └── IntegrityError
"""
from datetime import datetime, timezone
from typing import Any, Optional

# ============================================
# Base Exception
# ============================================

class JiraSyncError(Exception):
    """Base exception for all source-level errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "RATE_LIMIT_EXCEEDED")
        details: Additional context as a dictionary
        timestamp: When the error occurred
        cause: The original exception that caused this error
        recoverable: Whether retrying the same operation might succeed
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        self.cause = cause
        self.recoverable = recoverable

        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [f"[{self.code}]", self.message]
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================
# Configuration Errors
# ============================================

class ConfigurationError(JiraSyncError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list[str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Authentication Errors
# ============================================

class AuthenticationError(JiraSyncError):
    """Raised when Jira rejects the configured credentials (401/403).

    Basic auth credentials cannot be refreshed, so this is never retried.
    """

    def __init__(
        self,
        message: str = "Jira rejected the configured credentials",
        status_code: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if status_code:
            details["status_code"] = status_code
        super().__init__(
            message,
            code="AUTHENTICATION_FAILED",
            details=details,
            recoverable=False,
            **kwargs,
        )
        self.status_code = status_code


# ============================================
# API Errors
# ============================================

class APIError(JiraSyncError):
    """Base class for API response errors.

    Attributes:
        status_code: HTTP status code
        endpoint: API endpoint that was called
        response_body: Raw response body (may be truncated)
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        endpoint: Optional[str] = None,
        response_body: Optional[str] = None,
        method: str = "GET",
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["status_code"] = status_code
        if endpoint:
            details["endpoint"] = endpoint
        if method:
            details["method"] = method
        if response_body:
            details["response_body"] = response_body[:500]

        kwargs.setdefault("recoverable", status_code in (429, 500, 502, 503, 504))
        kwargs.setdefault("code", f"API_ERROR_{status_code}")

        super().__init__(
            message,
            details=details,
            **kwargs,
        )
        self.status_code = status_code
        self.endpoint = endpoint
        self.response_body = response_body
        self.method = method


class RateLimitError(APIError):
    """Raised when the API rate limit is exceeded (HTTP 429).

    Attributes:
        retry_after: Seconds to wait before retrying (from the Retry-After
            header), or None when the server did not say.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[float] = None,
        **kwargs,
    ):
        kwargs.setdefault("status_code", 429)
        details = kwargs.pop("details", {})
        if retry_after is not None:
            details["retry_after_seconds"] = retry_after
        super().__init__(
            message,
            code="RATE_LIMIT_EXCEEDED",
            details=details,
            recoverable=True,
            **kwargs,
        )
        self.retry_after = retry_after


class NotFoundError(APIError):
    """Raised when the requested resource is not found (HTTP 404)."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        **kwargs,
    ):
        message = f"{resource_type} not found"
        if resource_id:
            message = f"{resource_type} '{resource_id}' not found"

        kwargs.setdefault("status_code", 404)
        details = kwargs.pop("details", {})
        details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message,
            code="NOT_FOUND",
            details=details,
            recoverable=False,
            **kwargs,
        )


class BadRequestError(APIError):
    """Raised when Jira rejects the request itself (HTTP 400/422), e.g. bad JQL."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("status_code", 400)
        super().__init__(
            message,
            code="BAD_REQUEST",
            recoverable=False,
            **kwargs,
        )


class ServerError(APIError):
    """Raised when the server returns a 5xx error."""

    def __init__(self, message: str = "Server error", **kwargs):
        kwargs.setdefault("status_code", 500)
        super().__init__(
            message,
            code="SERVER_ERROR",
            recoverable=True,
            **kwargs,
        )


# ============================================
# Network Errors (Transient)
# ============================================

class NetworkError(JiraSyncError):
    """Base class for transient network errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ConnectionError(NetworkError):
    """Raised when the connection to the server fails."""

    def __init__(
        self,
        message: str = "Failed to connect to server",
        host: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if host:
            details["host"] = host
        super().__init__(
            message,
            code="CONNECTION_ERROR",
            details=details,
            **kwargs,
        )


class TimeoutError(NetworkError):
    """Raised when a request times out."""

    def __init__(
        self,
        message: str = "Request timed out",
        timeout_seconds: Optional[float] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if timeout_seconds:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(
            message,
            code="TIMEOUT_ERROR",
            details=details,
            **kwargs,
        )


class CircuitOpenError(JiraSyncError):
    """Raised when the circuit breaker is open and requests are rejected.

    Attributes:
        reset_at: When the circuit breaker will attempt to close
    """

    def __init__(
        self,
        message: str = "Circuit breaker is open, requests rejected",
        reset_at: Optional[datetime] = None,
        failure_count: int = 0,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if reset_at:
            details["reset_at"] = reset_at.isoformat()
        details["failure_count"] = failure_count

        super().__init__(
            message,
            code="CIRCUIT_OPEN",
            details=details,
            recoverable=True,
            **kwargs,
        )
        self.reset_at = reset_at
        self.failure_count = failure_count


# ============================================
# Payload and Record Errors
# ============================================

class MalformedPayloadError(JiraSyncError):
    """Raised when a whole API page cannot be parsed.

    Fatal for that batch only; the stream moves on to the next page.
    """

    def __init__(
        self,
        message: str = "Malformed API payload",
        endpoint: Optional[str] = None,
        start_at: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if endpoint:
            details["endpoint"] = endpoint
        if start_at is not None:
            details["start_at"] = start_at
        super().__init__(
            message,
            code="MALFORMED_PAYLOAD",
            details=details,
            recoverable=False,
            **kwargs,
        )


class RecordValidationError(JiraSyncError):
    """Base class for values and records that fail domain validation."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        kwargs.setdefault("code", "RECORD_VALIDATION_ERROR")
        super().__init__(
            message,
            details=details,
            recoverable=False,
            **kwargs,
        )
        self.field = field


class InvalidIdentifierError(RecordValidationError):
    """Raised when an identifier is not a positive integer."""

    def __init__(self, value: Any, field: str = "id", **kwargs):
        super().__init__(
            f"Invalid identifier: {value!r}",
            field=field,
            code="INVALID_IDENTIFIER",
            **kwargs,
        )
        self.value = value


class InvalidFormatError(RecordValidationError):
    """Raised when a value does not match its required format."""

    def __init__(self, value: Any, field: str, expected: str, **kwargs):
        details = kwargs.pop("details", {})
        details["expected"] = expected
        super().__init__(
            f"Invalid {field}: {value!r}",
            field=field,
            code="INVALID_FORMAT",
            details=details,
            **kwargs,
        )
        self.value = value


class UnknownCategoryError(RecordValidationError):
    """Raised when a category code is not one of the known values."""

    def __init__(self, raw: Any, category: str, **kwargs):
        super().__init__(
            f"Unknown {category}: {raw!r}",
            field=category,
            code="UNKNOWN_CATEGORY",
            **kwargs,
        )
        self.raw = raw
        self.category = category


class MissingFieldError(RecordValidationError):
    """Raised when a required field is absent from an API record."""

    def __init__(self, field: str, **kwargs):
        super().__init__(
            f"Missing required field: {field}",
            field=field,
            code="MISSING_FIELD",
            **kwargs,
        )


class PageNumberError(RecordValidationError):
    """Raised when a page number is below the minimum."""

    def __init__(self, value: int, minimum: int = 1, **kwargs):
        super().__init__(
            f"Page number must be at least {minimum}, but was {value}",
            field="page_number",
            code="INVALID_PAGE_NUMBER",
            **kwargs,
        )
        self.value = value


class PageSizeError(RecordValidationError):
    """Raised when a page size is outside the allowed range."""

    def __init__(self, value: int, minimum: int, maximum: int, **kwargs):
        super().__init__(
            f"Page size must be between {minimum} and {maximum}, but was {value}",
            field="page_size",
            code="INVALID_PAGE_SIZE",
            **kwargs,
        )
        self.value = value


# ============================================
# Database Errors
# ============================================

class DatabaseError(JiraSyncError):
    """Base class for database-related errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ConnectionPoolError(DatabaseError):
    """Raised when the connection pool is exhausted or unavailable."""

    def __init__(self, message: str = "Database connection pool error", **kwargs):
        super().__init__(message, code="CONNECTION_POOL_ERROR", **kwargs)


class PersistError(DatabaseError):
    """Raised when a write through a command repository fails."""

    def __init__(
        self,
        message: str = "Failed to persist records",
        table: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if table:
            details["table"] = table
        super().__init__(message, code="PERSIST_ERROR", details=details, **kwargs)


class QueryError(DatabaseError):
    """Raised when a read through a query repository fails."""

    def __init__(
        self,
        message: str = "Failed to query records",
        table: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if table:
            details["table"] = table
        super().__init__(message, code="QUERY_ERROR", details=details, **kwargs)


class TransactionError(DatabaseError):
    """Raised when a unit of work fails and its transaction is rolled back."""

    def __init__(
        self,
        message: str = "Transaction execution failed",
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        super().__init__(
            message,
            code="TRANSACTION_ERROR",
            details=details,
            **kwargs,
        )


class IntegrityError(DatabaseError):
    """Raised when a database integrity constraint is violated."""

    def __init__(
        self,
        message: str = "Database integrity error",
        constraint: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if constraint:
            details["constraint"] = constraint
        super().__init__(
            message,
            code="INTEGRITY_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


def is_retryable_fetch_error(error: BaseException) -> bool:
    """Whether a fetch failure may succeed if the same page is requested again."""
    return isinstance(
        error, (RateLimitError, ServerError, NetworkError, CircuitOpenError)
    )


__all__ = [
    "JiraSyncError",
    "ConfigurationError",
    "AuthenticationError",
    "APIError",
    "RateLimitError",
    "NotFoundError",
    "BadRequestError",
    "ServerError",
    "NetworkError",
    "ConnectionError",
    "TimeoutError",
    "CircuitOpenError",
    "MalformedPayloadError",
    "RecordValidationError",
    "InvalidIdentifierError",
    "InvalidFormatError",
    "UnknownCategoryError",
    "MissingFieldError",
    "PageNumberError",
    "PageSizeError",
    "DatabaseError",
    "ConnectionPoolError",
    "PersistError",
    "QueryError",
    "TransactionError",
    "IntegrityError",
    "is_retryable_fetch_error",
]
