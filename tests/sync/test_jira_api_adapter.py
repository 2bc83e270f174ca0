"""Tests for the Jira API adapters."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.jirasync.api.client import PaginationConfig
from src.jirasync.config import JiraApiConfig
from src.jirasync.api.auth import JiraCredentials
from src.jirasync.exceptions import (
    AuthenticationError,
    BadRequestError,
    MalformedPayloadError,
    RateLimitError,
)
from src.jirasync.sync.adapters.jira_api_adapter import (
    JiraIssueAPI,
    JiraProjectAPI,
    build_issue_jql,
)
from src.jirasync.sync.domain.value_objects import ProjectKey

SINCE = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
KEYS = [ProjectKey("ALPHA"), ProjectKey("BETA")]


def issue(n: int) -> dict:
    return {"id": str(n), "key": f"ALPHA-{n}", "fields": {}}


def page(issues: list[dict], total: int | None = None, **extra) -> dict:
    data = {"issues": issues, **extra}
    if total is not None:
        data["total"] = total
    return data


def make_client(*responses) -> MagicMock:
    client = MagicMock()
    client.post = AsyncMock(side_effect=list(responses))
    return client


def make_api(client, **pagination) -> JiraIssueAPI:
    pagination.setdefault("page_size", 2)
    pagination.setdefault("delay_between_pages", 0)
    return JiraIssueAPI(client, pagination_config=PaginationConfig(**pagination))


async def collect(api: JiraIssueAPI, keys=KEYS):
    return [batch async for batch in api.fetch_issues(keys, SINCE)]


def requested_offsets(client) -> list[int]:
    return [c.args[1]["startAt"] for c in client.post.await_args_list]


class TestBuildIssueJql:
    """Tests for JQL construction."""

    def test_inclusive(self):
        jql = build_issue_jql(KEYS, SINCE)
        assert jql == (
            'project in ("ALPHA", "BETA") AND updated >= \'2024-01-15 10:30\' '
            "ORDER BY id ASC"
        )

    def test_exclusive(self):
        assert "updated > '2024-01-15 10:30'" in build_issue_jql(KEYS, SINCE, inclusive=False)

    def test_converts_to_utc(self):
        local = SINCE.astimezone(timezone(timedelta(hours=2)))
        assert "'2024-01-15 10:30'" in build_issue_jql(KEYS, local)


class TestJiraIssueAPI:
    """Tests for JiraIssueAPI.fetch_issues."""

    @pytest.mark.asyncio
    async def test_paginates_until_total(self):
        client = make_client(
            page([issue(1), issue(2)], total=3),
            page([issue(3)], total=3),
        )

        batches = await collect(make_api(client))

        assert [len(b.records) for b in batches] == [2, 1]
        assert [b.start_at for b in batches] == [0, 2]
        assert requested_offsets(client) == [0, 2]

    @pytest.mark.asyncio
    async def test_request_body(self):
        client = make_client(page([issue(1)], total=1))

        await collect(make_api(client))

        endpoint, body = client.post.await_args.args
        assert endpoint == "/rest/api/3/search"
        assert body["maxResults"] == 2
        assert body["jql"].startswith('project in ("ALPHA", "BETA")')
        assert "updated" in body["fields"]

    @pytest.mark.asyncio
    async def test_stops_on_is_last(self):
        client = make_client(page([issue(1), issue(2)], isLast=True))

        batches = await collect(make_api(client))

        assert len(batches) == 1
        assert client.post.await_count == 1

    @pytest.mark.asyncio
    async def test_stops_on_short_page(self):
        client = make_client(page([issue(1), issue(2)]), page([issue(3)]))

        batches = await collect(make_api(client))

        assert len(batches) == 2
        assert requested_offsets(client) == [0, 2]

    @pytest.mark.asyncio
    async def test_empty_result(self):
        client = make_client(page([], total=0))
        assert await collect(make_api(client)) == []

    @pytest.mark.asyncio
    async def test_no_project_keys(self):
        client = make_client()
        assert await collect(make_api(client), keys=[]) == []
        client.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retryable_error_repulls_same_offset(self):
        client = make_client(
            page([issue(1), issue(2)], total=4),
            RateLimitError(retry_after=3),
            page([issue(3), issue(4)], total=4),
        )

        batches = await collect(make_api(client))

        assert [b.ok for b in batches] == [True, False, True]
        assert isinstance(batches[1].error, RateLimitError)
        assert batches[1].start_at == 2
        assert requested_offsets(client) == [0, 2, 2]

    @pytest.mark.asyncio
    async def test_malformed_page_skipped(self):
        client = make_client(
            page([issue(1), issue(2)], total=5),
            {"unexpected": True},
            page([issue(5)], total=5),
        )

        batches = await collect(make_api(client))

        assert [b.ok for b in batches] == [True, False, True]
        assert isinstance(batches[1].error, MalformedPayloadError)
        assert requested_offsets(client) == [0, 2, 4]

    @pytest.mark.asyncio
    async def test_gives_up_after_consecutive_malformed_pages(self):
        client = make_client(*[{"bad": 1}] * 3)

        batches = await collect(make_api(client, max_malformed_pages=2))

        assert len(batches) == 3
        assert all(isinstance(b.error, MalformedPayloadError) for b in batches)

    @pytest.mark.asyncio
    async def test_malformed_last_page_ends_stream(self):
        client = make_client(page([issue(1), issue(2)], total=3), ["not", "a", "page"])

        batches = await collect(make_api(client))

        assert [b.ok for b in batches] == [True, False]
        assert client.post.await_count == 2

    @pytest.mark.asyncio
    async def test_authentication_error_ends_stream(self):
        client = make_client(AuthenticationError(status_code=401), page([issue(1)]))

        batches = await collect(make_api(client))

        assert len(batches) == 1
        assert isinstance(batches[0].error, AuthenticationError)
        assert client.post.await_count == 1

    @pytest.mark.asyncio
    async def test_rejected_query_ends_stream(self):
        client = make_client(BadRequestError("bad JQL"))

        batches = await collect(make_api(client))

        assert len(batches) == 1
        assert isinstance(batches[0].error, BadRequestError)

    @pytest.mark.asyncio
    async def test_max_pages(self):
        client = make_client(*[page([issue(1), issue(2)]) for _ in range(5)])

        batches = await collect(make_api(client, max_pages=2))

        assert len(batches) == 2

    def test_from_config(self):
        config = JiraApiConfig(
            base_url="https://acme.atlassian.net",
            credentials=JiraCredentials("me@acme.test", "token"),
            page_size=50,
            page_delay_seconds=0.25,
        )
        api = JiraIssueAPI.from_config(MagicMock(), config, since_inclusive=False)

        assert api.pagination_config.page_size == 50
        assert api.pagination_config.delay_between_pages == 0.25
        assert api.since_inclusive is False


class TestJiraProjectAPI:
    """Tests for JiraProjectAPI."""

    @pytest.mark.asyncio
    async def test_fetch_projects(self):
        client = MagicMock()
        client.get = AsyncMock(return_value=[{"id": "1", "key": "ALPHA", "name": "Alpha"}])

        projects = await JiraProjectAPI(client).fetch_projects()

        assert projects[0]["key"] == "ALPHA"
        client.get.assert_awaited_once_with("/rest/api/3/project")

    @pytest.mark.asyncio
    async def test_non_list_response(self):
        client = MagicMock()
        client.get = AsyncMock(return_value={"values": []})

        with pytest.raises(MalformedPayloadError):
            await JiraProjectAPI(client).fetch_projects()
