"""Configuration loaded from environment variables.

Entry points call ``load_dotenv()`` first, so values may also come from a
``.env`` file in the working directory.

Jira:
    JIRA_BASE_URL, JIRA_EMAIL, JIRA_API_TOKEN (required)
    JIRA_PAGE_SIZE (default 100), JIRA_PAGE_DELAY_SECONDS (default 1.0),
    JIRA_REQUEST_TIMEOUT_SECONDS (default 60), JIRA_MAX_PAGES,
    JIRA_MAX_MALFORMED_PAGES (default 3)

Database:
    DATABASE_URL, or POSTGRES_HOST/POSTGRES_PORT/POSTGRES_DATABASE/
    POSTGRES_USER/POSTGRES_PASSWORD; POSTGRES_MIN_CONNECTIONS (default 2),
    POSTGRES_MAX_CONNECTIONS (default 10), POSTGRES_CONNECT_TIMEOUT (default 30)

Sync:
    SYNC_MAX_BATCH_RETRIES (default 3), SYNC_RETRY_BACKOFF_SECONDS
    (default 0.5), SYNC_MAX_BACKOFF_SECONDS (default 30),
    SYNC_SINCE_INCLUSIVE (default true), SYNC_TRANSACTION_TIMEOUT_SECONDS
    (default 60), SYNC_DEFAULT_DAYS (default 1)
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

from .api.auth import JiraCredentials
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer, got {raw!r}",
            details={"key": name},
            cause=e,
        )


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be a number, got {raw!r}",
            details={"key": name},
            cause=e,
        )


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_str(name)
    if raw is None:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


# ============================================
# Jira
# ============================================

@dataclass
class JiraApiConfig:
    """Connection and pagination settings for the Jira REST API."""

    base_url: str
    credentials: JiraCredentials
    request_timeout_seconds: float = 60.0
    page_size: int = 100
    page_delay_seconds: float = 1.0
    max_pages: Optional[int] = None
    max_malformed_pages: int = 3
    circuit_failure_threshold: int = 5
    circuit_timeout_seconds: float = 60.0

    def __post_init__(self):
        self.base_url = (self.base_url or "").rstrip("/")
        if not self.base_url:
            raise ConfigurationError(
                "Jira base URL is required. Set JIRA_BASE_URL.",
                missing_keys=["JIRA_BASE_URL"],
            )
        if not 1 <= self.page_size <= 100:
            raise ConfigurationError(
                f"JIRA_PAGE_SIZE must be between 1 and 100, got {self.page_size}",
                details={"key": "JIRA_PAGE_SIZE"},
            )

    @classmethod
    def from_env(cls) -> "JiraApiConfig":
        """Build from JIRA_* environment variables.

        Raises:
            ConfigurationError: If a required value is missing or malformed
        """
        return cls(
            base_url=_env_str("JIRA_BASE_URL", ""),
            credentials=JiraCredentials.from_env(),
            request_timeout_seconds=_env_float("JIRA_REQUEST_TIMEOUT_SECONDS", 60.0),
            page_size=_env_int("JIRA_PAGE_SIZE", 100),
            page_delay_seconds=_env_float("JIRA_PAGE_DELAY_SECONDS", 1.0),
            max_pages=_env_int("JIRA_MAX_PAGES", None),
            max_malformed_pages=_env_int("JIRA_MAX_MALFORMED_PAGES", 3),
        )

    def __repr__(self):
        return (
            f"JiraApiConfig("
            f"base_url={self.base_url}, "
            f"credential={self.credentials.credential_id}, "
            f"page_size={self.page_size}, "
            f"page_delay={self.page_delay_seconds}s)"
        )


# ============================================
# Database
# ============================================

@dataclass
class DatabaseConfig:
    """PostgreSQL connection settings."""

    dsn: str = field(repr=False)
    min_connections: int = 2
    max_connections: int = 10
    connect_timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Build from DATABASE_URL, or from the POSTGRES_* parts.

        Raises:
            ConfigurationError: If neither form is configured
        """
        dsn = _env_str("DATABASE_URL")
        if not dsn:
            host = _env_str("POSTGRES_HOST")
            database = _env_str("POSTGRES_DATABASE")
            user = _env_str("POSTGRES_USER")
            missing = [
                name
                for name, value in (
                    ("POSTGRES_HOST", host),
                    ("POSTGRES_DATABASE", database),
                    ("POSTGRES_USER", user),
                )
                if not value
            ]
            if missing:
                raise ConfigurationError(
                    "Database is not configured. Set DATABASE_URL or "
                    "POSTGRES_HOST/POSTGRES_DATABASE/POSTGRES_USER.",
                    missing_keys=["DATABASE_URL"] + missing,
                )
            port = _env_int("POSTGRES_PORT", 5432)
            password = _env_str("POSTGRES_PASSWORD", "")
            auth = quote(user, safe="")
            if password:
                auth = f"{auth}:{quote(password, safe='')}"
            dsn = f"postgresql://{auth}@{host}:{port}/{database}"

        min_connections = _env_int("POSTGRES_MIN_CONNECTIONS", 2)
        max_connections = _env_int("POSTGRES_MAX_CONNECTIONS", 10)
        if min_connections > max_connections:
            raise ConfigurationError(
                f"POSTGRES_MIN_CONNECTIONS ({min_connections}) exceeds "
                f"POSTGRES_MAX_CONNECTIONS ({max_connections})",
            )
        return cls(
            dsn=dsn,
            min_connections=min_connections,
            max_connections=max_connections,
            connect_timeout_seconds=_env_float("POSTGRES_CONNECT_TIMEOUT", 30.0),
        )


# ============================================
# Sync
# ============================================

@dataclass
class SyncConfig:
    """Retry, backoff and transaction settings for sync runs.

    Attributes:
        max_batch_retries: Retries allowed per batch after a rate limit or
            transient failure before the run fails
        retry_backoff_seconds: Initial backoff when the source gives no
            Retry-After hint; doubled per attempt
        max_backoff_seconds: Upper bound on any single wait
        since_inclusive: Whether issues updated exactly at the cutoff are
            included (``>=``) or excluded (``>``)
        transaction_timeout_seconds: Upper bound on one batch transaction
        default_days: Lookback window used when none is given
    """

    max_batch_retries: int = 3
    retry_backoff_seconds: float = 0.5
    max_backoff_seconds: float = 30.0
    since_inclusive: bool = True
    transaction_timeout_seconds: float = 60.0
    default_days: int = 1

    def __post_init__(self):
        if self.max_batch_retries < 0:
            raise ConfigurationError(
                f"SYNC_MAX_BATCH_RETRIES must not be negative, got {self.max_batch_retries}"
            )
        if self.retry_backoff_seconds < 0 or self.max_backoff_seconds < 0:
            raise ConfigurationError("Sync backoff settings must not be negative")

    @classmethod
    def from_env(cls) -> "SyncConfig":
        return cls(
            max_batch_retries=_env_int("SYNC_MAX_BATCH_RETRIES", 3),
            retry_backoff_seconds=_env_float("SYNC_RETRY_BACKOFF_SECONDS", 0.5),
            max_backoff_seconds=_env_float("SYNC_MAX_BACKOFF_SECONDS", 30.0),
            since_inclusive=_env_bool("SYNC_SINCE_INCLUSIVE", True),
            transaction_timeout_seconds=_env_float("SYNC_TRANSACTION_TIMEOUT_SECONDS", 60.0),
            default_days=_env_int("SYNC_DEFAULT_DAYS", 1),
        )


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for entry points (LOG_LEVEL overrides INFO)."""
    level_name = (level or _env_str("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
