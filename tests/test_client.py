#!/usr/bin/env python3
"""Unit tests for the Jira HTTP client.

Tests cover:
    - Status code to exception mapping
    - Retry-After parsing
    - Transient retry, and what is never retried
    - Circuit breaker integration
"""
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from unittest.mock import AsyncMock, patch

import pytest

from src.jirasync.api.auth import JiraCredentials
from src.jirasync.api.client import JiraClient, parse_retry_after
from src.jirasync.exceptions import (
    APIError,
    AuthenticationError,
    BadRequestError,
    CircuitOpenError,
    ConfigurationError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
)

SLEEP = "src.jirasync.api.resilience.asyncio.sleep"


@pytest.fixture
def credentials():
    return JiraCredentials(email="me@acme.test", api_token="secret-token")


@pytest.fixture
def client(credentials):
    return JiraClient("https://acme.atlassian.net/", credentials, max_retries=3)


# ============================================
# Error Mapping
# ============================================

class TestCreateApiError:
    """Tests for JiraClient._create_api_error."""

    @pytest.mark.parametrize(
        "status, expected",
        [
            (400, BadRequestError),
            (401, AuthenticationError),
            (403, AuthenticationError),
            (404, NotFoundError),
            (422, BadRequestError),
            (429, RateLimitError),
            (500, ServerError),
            (503, ServerError),
            (409, APIError),
        ],
    )
    def test_status_mapping(self, client, status, expected):
        error = client._create_api_error(status, "GET", "/rest/api/3/project", "body")
        assert type(error) is expected

    def test_rate_limit_carries_retry_after(self, client):
        error = client._create_api_error(429, "POST", "/rest/api/3/search", "", retry_after="12")

        assert error.retry_after == 12.0
        assert error.recoverable is True

    def test_authentication_not_recoverable(self, client):
        error = client._create_api_error(401, "GET", "/x", "")
        assert error.recoverable is False
        assert error.status_code == 401


class TestParseRetryAfter:
    """Tests for parse_retry_after."""

    def test_seconds(self):
        assert parse_retry_after("30") == 30.0

    def test_missing(self):
        assert parse_retry_after(None) is None
        assert parse_retry_after("") is None

    def test_http_date(self):
        when = datetime.now(timezone.utc) + timedelta(seconds=120)
        delay = parse_retry_after(format_datetime(when, usegmt=True))
        assert 100 <= delay <= 121

    def test_past_date_is_zero(self):
        when = datetime.now(timezone.utc) - timedelta(hours=1)
        assert parse_retry_after(format_datetime(when, usegmt=True)) == 0.0

    def test_garbage(self):
        assert parse_retry_after("soon") is None


# ============================================
# Retry and Circuit Breaker
# ============================================

class TestRequestWithRetry:
    """Tests for JiraClient._request_with_retry."""

    def test_base_url_required(self, credentials):
        with pytest.raises(ConfigurationError):
            JiraClient("", credentials)

    def test_trailing_slash_stripped(self, client):
        assert client.base_url == "https://acme.atlassian.net"

    @pytest.mark.asyncio
    async def test_request_outside_context(self, client):
        with pytest.raises(RuntimeError):
            await client._request("GET", "/rest/api/3/project")

    @pytest.mark.asyncio
    async def test_retries_server_errors(self, client):
        request = AsyncMock(side_effect=[ServerError(status_code=502), {"ok": True}])

        with patch.object(client, "_request", request), patch(SLEEP, new=AsyncMock()) as sleep:
            result = await client.get("/rest/api/3/project")

        assert result == {"ok": True}
        assert request.await_count == 2
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, client):
        request = AsyncMock(side_effect=NetworkError("reset"))

        with patch.object(client, "_request", request), patch(SLEEP, new=AsyncMock()):
            with pytest.raises(NetworkError):
                await client.get("/rest/api/3/project")

        assert request.await_count == 3

    @pytest.mark.asyncio
    async def test_backoff_doubles_without_jitter(self, client):
        request = AsyncMock(side_effect=[NetworkError("reset"), ServerError(status_code=500), {}])

        with patch.object(client, "_request", request), patch(SLEEP, new=AsyncMock()) as sleep:
            await client.get("/rest/api/3/project")

        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            RateLimitError(retry_after=5),
            AuthenticationError(status_code=401),
            NotFoundError("Resource"),
            BadRequestError("bad JQL"),
        ],
    )
    async def test_never_retried(self, client, error):
        request = AsyncMock(side_effect=error)

        with patch.object(client, "_request", request), patch(SLEEP, new=AsyncMock()) as sleep:
            with pytest.raises(type(error)):
                await client.post("/rest/api/3/search", {"jql": "x"})

        assert request.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_circuit_opens_and_fails_fast(self, credentials):
        client = JiraClient(
            "https://acme.atlassian.net",
            credentials,
            max_retries=1,
            circuit_failure_threshold=2,
        )
        request = AsyncMock(side_effect=ServerError(status_code=503))

        with patch.object(client, "_request", request):
            for _ in range(2):
                with pytest.raises(ServerError):
                    await client.get("/rest/api/3/project")
            with pytest.raises(CircuitOpenError):
                await client.get("/rest/api/3/project")

        assert request.await_count == 2
        assert client.circuit_status["state"] == "open"

    @pytest.mark.asyncio
    async def test_post_passes_body(self, client):
        request = AsyncMock(return_value={"issues": []})

        with patch.object(client, "_request", request):
            await client.post("/rest/api/3/search", {"jql": "project = X"})

        request.assert_awaited_once_with("POST", "/rest/api/3/search", None, {"jql": "project = X"})

    @pytest.mark.asyncio
    async def test_context_manager_opens_session(self, client):
        async with client:
            assert client._session is not None
            assert client._session.headers["Authorization"].startswith("Basic ")
        assert client._session is None
