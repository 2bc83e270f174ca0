"""Jira API and database infrastructure.

Classes:
    JiraClient: HTTP client with basic auth, transient retry and circuit breaker
    JiraCredentials: Account email + API token for basic auth
    PaginationConfig: Page size, delay and safety limits for paginated fetches
    CircuitBreaker: Prevent cascading failures against the Jira API

Database:
    database_transaction: Transaction scope that repositories join
    connection_scope: Active transaction connection, or a pooled one
    create_pool / close_pool / check_database_health: Pool lifecycle

Errors:
    sanitize_error_payload: Strip secrets from error bodies sent to clients
    sanitize_report_payload: Strip secrets from sync report failure causes
"""
from .auth import JiraCredentials
from .client import JiraClient, PaginationConfig, parse_retry_after
from .database import (
    active_connection,
    check_database_health,
    close_pool,
    connection_scope,
    create_pool,
    create_pool_from_config,
    database_connection,
    database_transaction,
)
from .error_sanitizer import (
    ErrorSanitizer,
    sanitize_error_message,
    sanitize_error_payload,
    sanitize_report_payload,
)
from .resilience import CircuitBreaker, CircuitState, backoff_delay, retry_async

__all__ = [
    # Client
    "JiraClient",
    "JiraCredentials",
    "PaginationConfig",
    "parse_retry_after",
    # Database
    "active_connection",
    "check_database_health",
    "close_pool",
    "connection_scope",
    "create_pool",
    "create_pool_from_config",
    "database_connection",
    "database_transaction",
    # Error sanitization
    "ErrorSanitizer",
    "sanitize_error_message",
    "sanitize_error_payload",
    "sanitize_report_payload",
    # Resilience
    "CircuitBreaker",
    "CircuitState",
    "backoff_delay",
    "retry_async",
]
