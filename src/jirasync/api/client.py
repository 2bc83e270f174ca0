"""Async HTTP client for the Jira Cloud REST API.

This module provides a reusable HTTP client that handles the common
concerns of talking to Jira:

    - HTTP basic auth (account email + API token)
    - Typed exceptions for every failure class
    - Bounded exponential-backoff retry for 5xx and network errors
    - Circuit breaker for resilience against API outages
    - Connection pooling via a shared aiohttp session

Rate limits (429) are not slept on here. They surface immediately as a
RateLimitError carrying the server's Retry-After hint so the sync
orchestrator can decide how long to pause.

Design Philosophy:
    This client knows HOW to talk to Jira, but not WHAT to fetch.
    Resource knowledge (issues, projects, JQL) belongs in the adapters.

Usage:
    async with JiraClient(base_url, credentials) as client:
        projects = await client.get("/rest/api/3/project")
        page = await client.post("/rest/api/3/search", {"jql": "..."})
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import aiohttp

from .auth import JiraCredentials
from .resilience import CircuitBreaker, retry_async
from ..exceptions import (
    APIError,
    AuthenticationError,
    BadRequestError,
    ConfigurationError,
    ConnectionError,
    MalformedPayloadError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TimeoutError,
)

logger = logging.getLogger(__name__)

# ============================================
# Configuration
# ============================================

@dataclass
class PaginationConfig:
    """Configuration for paginated API requests.

    Attributes:
        page_size: Number of items per request (Jira caps search at 100)
        delay_between_pages: Seconds to wait between requests (rate limiting)
        max_pages: Safety limit to prevent infinite loops (None = no limit)
        max_malformed_pages: Consecutive unparseable pages tolerated while
            the total is unknown before the stream gives up
    """
    page_size: int = 100
    delay_between_pages: float = 1.0
    max_pages: Optional[int] = None
    max_malformed_pages: int = 3


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header (delta-seconds or HTTP date) into seconds."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring unparseable Retry-After header: {value!r}")
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


# ============================================
# The Client
# ============================================

class JiraClient:
    """Async HTTP client for the Jira Cloud REST API.

    This client is designed to be used as an async context manager to ensure
    proper session lifecycle management:

        async with JiraClient(base_url, credentials) as client:
            data = await client.get("/rest/api/3/project")

    Attributes:
        base_url: Site URL (e.g., "https://example.atlassian.net")
        credentials: Basic auth credentials
        request_timeout: Total timeout per HTTP call, in seconds
        max_retries: Attempts per call for 5xx and network failures
    """

    def __init__(
        self,
        base_url: str,
        credentials: JiraCredentials,
        request_timeout: float = 60.0,
        max_retries: int = 3,
        enable_circuit_breaker: bool = True,
        circuit_failure_threshold: int = 5,
        circuit_timeout: float = 60.0,
    ):
        """Initialize the JiraClient.

        Raises:
            ConfigurationError: If base_url is empty
        """
        self.base_url = (base_url or "").rstrip("/")
        if not self.base_url:
            raise ConfigurationError(
                "Base URL is required. Set JIRA_BASE_URL.",
                missing_keys=["JIRA_BASE_URL"],
            )
        self.credentials = credentials
        self.request_timeout = request_timeout
        self.max_retries = max_retries

        # Session is created in __aenter__, closed in __aexit__
        self._session: Optional[aiohttp.ClientSession] = None

        self._circuit_breaker: Optional[CircuitBreaker] = None
        if enable_circuit_breaker:
            self._circuit_breaker = CircuitBreaker(
                failure_threshold=circuit_failure_threshold,
                timeout=circuit_timeout,
                name="jira_api",
            )

    @classmethod
    def from_config(cls, config) -> "JiraClient":
        """Build a client from a JiraApiConfig."""
        return cls(
            base_url=config.base_url,
            credentials=config.credentials,
            request_timeout=config.request_timeout_seconds,
            circuit_failure_threshold=config.circuit_failure_threshold,
            circuit_timeout=config.circuit_timeout_seconds,
        )

    # ----------------------------------------
    # Context Manager Protocol
    # ----------------------------------------

    async def __aenter__(self) -> "JiraClient":
        """Enter async context: create the HTTP session."""
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=10, limit_per_host=10),
            timeout=aiohttp.ClientTimeout(total=self.request_timeout, connect=10),
            headers=self.credentials.auth_headers(),
        )
        logger.debug(
            f"Opened Jira session for {self.base_url} "
            f"(credential {self.credentials.credential_id})"
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context: close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    # ----------------------------------------
    # Low-Level Request Methods
    # ----------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> Any:
        """Make a single HTTP request (no retry logic).

        Returns:
            Parsed JSON response

        Raises:
            APIError subclass: If response status is not 2xx
            AuthenticationError: On 401/403
            MalformedPayloadError: If a 2xx body is not valid JSON
            ConnectionError, TimeoutError, NetworkError: On transport failure
            RuntimeError: If called outside of async context manager
        """
        if not self._session:
            raise RuntimeError(
                "JiraClient must be used as async context manager: "
                "async with JiraClient(...) as client:"
            )

        url = f"{self.base_url}{endpoint}"

        try:
            async with self._session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise self._create_api_error(
                        status=response.status,
                        method=method,
                        endpoint=endpoint,
                        response_body=error_text,
                        retry_after=response.headers.get("Retry-After"),
                    )

                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise MalformedPayloadError(
                        f"{method} {endpoint} returned a body that is not JSON",
                        endpoint=endpoint,
                        cause=e,
                    )

        except aiohttp.ClientConnectionError as e:
            raise ConnectionError(
                f"Failed to connect to {self.base_url}",
                host=self.base_url,
                cause=e,
            )

        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Request to {endpoint} timed out",
                timeout_seconds=self.request_timeout,
                cause=e,
            )

        except aiohttp.ClientError as e:
            raise NetworkError(
                f"Network error during {method} {endpoint}: {e}",
                cause=e,
            )

    def _create_api_error(
        self,
        status: int,
        method: str,
        endpoint: str,
        response_body: str,
        retry_after: Optional[str] = None,
    ) -> Exception:
        """Create the typed exception matching an error status code."""
        if status in (401, 403):
            return AuthenticationError(
                f"Jira rejected credentials for {method} {endpoint}",
                status_code=status,
                details={"endpoint": endpoint},
            )

        if status == 404:
            return NotFoundError(
                resource_type="Resource",
                resource_id=endpoint,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        if status == 429:
            return RateLimitError(
                f"Rate limit exceeded for {endpoint}",
                retry_after=parse_retry_after(retry_after),
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        if status in (400, 422):
            return BadRequestError(
                f"Jira rejected {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        if status >= 500:
            return ServerError(
                f"Server error ({status}) for {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        return APIError(
            f"{method} {endpoint} failed",
            status_code=status,
            endpoint=endpoint,
            method=method,
            response_body=response_body,
        )

    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> Any:
        """Make an HTTP request with transient retry and circuit breaker.

        Resilience rules:
            - Circuit open: fail fast with CircuitOpenError
            - 5xx and network errors: exponential backoff, up to max_retries
            - 429: raised immediately (the caller owns rate-limit pauses)
            - 401/403, 400, 404: raised immediately

        Raises:
            CircuitOpenError: If circuit breaker is open
            JiraSyncError subclass: The final failure
        """
        async def attempt() -> Any:
            if self._circuit_breaker:
                return await self._circuit_breaker.call(
                    self._request, method, endpoint, params, json_body
                )
            return await self._request(method, endpoint, params, json_body)

        return await retry_async(
            attempt,
            max_attempts=self.max_retries,
            initial_delay=1.0,
            max_delay=60.0,
            retryable_exceptions=(ServerError, NetworkError),
            jitter=False,
        )

    @property
    def circuit_status(self) -> Optional[dict[str, Any]]:
        """Get circuit breaker status for monitoring."""
        if self._circuit_breaker:
            return self._circuit_breaker.get_status()
        return None

    # ----------------------------------------
    # High-Level Request Methods
    # ----------------------------------------

    async def get(
        self,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> Any:
        """Make a GET request and return the parsed JSON body."""
        return await self._request_with_retry("GET", endpoint, params=params)

    async def post(
        self,
        endpoint: str,
        json_body: dict,
        params: Optional[dict] = None,
    ) -> Any:
        """Make a POST request and return the parsed JSON body."""
        return await self._request_with_retry(
            "POST", endpoint, params=params, json_body=json_body
        )
