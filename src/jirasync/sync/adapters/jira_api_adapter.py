"""Jira API adapters for fetching issues and projects.

These adapters implement IIssueAPI and IProjectAPI on top of JiraClient.
JiraIssueAPI drives offset pagination itself instead of delegating to a
generic paginator, because a page that fails must be handed to the
consumer as a batch and requested again on the next pull.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ...exceptions import (
    AuthenticationError,
    JiraSyncError,
    MalformedPayloadError,
    is_retryable_fetch_error,
)
from ..domain.entities import IssueBatch
from ..domain.ports import IIssueAPI, IProjectAPI
from ..domain.value_objects import ProjectKey

if TYPE_CHECKING:
    from ...api.client import JiraClient, PaginationConfig

logger = logging.getLogger(__name__)

JQL_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"


def build_issue_jql(
    project_keys: list[ProjectKey],
    since: datetime,
    inclusive: bool = True,
) -> str:
    """JQL selecting issues of the given projects updated since the cutoff.

    The cutoff is rendered in UTC at minute precision, which is the
    finest granularity JQL date comparisons accept.
    """
    if since.tzinfo is not None:
        since = since.astimezone(timezone.utc)
    keys = ", ".join(f'"{key}"' for key in project_keys)
    operator = ">=" if inclusive else ">"
    return (
        f"project in ({keys}) AND updated {operator} "
        f"'{since.strftime(JQL_TIMESTAMP_FORMAT)}' ORDER BY id ASC"
    )


class JiraIssueAPI(IIssueAPI):
    """Jira Cloud adapter for streaming issues through the search API.

    Each pull yields one IssueBatch:
        - records for a successful non-empty page
        - a retryable error (rate limit, network, server, open circuit);
          the next pull requests the same startAt again
        - a fatal error (authentication, rejected JQL); the stream ends
        - a MalformedPayloadError; the stream moves on to the next page
    """

    ENDPOINT = "/rest/api/3/search"

    FIELDS = [
        "project",
        "summary",
        "description",
        "issuetype",
        "priority",
        "parent",
        "created",
        "updated",
    ]

    def __init__(
        self,
        client: "JiraClient",
        pagination_config: "PaginationConfig | None" = None,
        since_inclusive: bool = True,
    ):
        """Initialize the API adapter.

        Args:
            client: Open JiraClient
            pagination_config: Optional pagination config override
            since_inclusive: Use ``>=`` rather than ``>`` for the cutoff
        """
        self.client = client
        self._pagination_config = pagination_config
        self.since_inclusive = since_inclusive

    @classmethod
    def from_config(
        cls,
        client: "JiraClient",
        config,
        since_inclusive: bool = True,
    ) -> "JiraIssueAPI":
        """Build an adapter whose paging follows a JiraApiConfig."""
        from ...api.client import PaginationConfig
        return cls(
            client,
            pagination_config=PaginationConfig(
                page_size=config.page_size,
                delay_between_pages=config.page_delay_seconds,
                max_pages=config.max_pages,
                max_malformed_pages=config.max_malformed_pages,
            ),
            since_inclusive=since_inclusive,
        )

    @property
    def pagination_config(self) -> "PaginationConfig":
        if self._pagination_config is None:
            from ...api.client import PaginationConfig
            self._pagination_config = PaginationConfig()
        return self._pagination_config

    def _search_body(self, jql: str, start_at: int) -> dict[str, Any]:
        return {
            "jql": jql,
            "fields": self.FIELDS,
            "startAt": start_at,
            "maxResults": self.pagination_config.page_size,
        }

    async def fetch_issues(
        self,
        project_keys: list[ProjectKey],
        since: datetime,
    ) -> AsyncIterator[IssueBatch]:
        """Stream issues page by page. See IIssueAPI.fetch_issues."""
        if not project_keys:
            logger.info("No project keys given, nothing to fetch")
            return

        config = self.pagination_config
        jql = build_issue_jql(project_keys, since, self.since_inclusive)
        logger.info(f"Fetching issues: {jql}")

        start_at = 0
        total: int | None = None
        pages_fetched = 0
        malformed_streak = 0

        while True:
            try:
                data = await self.client.post(self.ENDPOINT, self._search_body(jql, start_at))
                issues = self._extract_issues(data, start_at)
            except MalformedPayloadError as e:
                logger.warning(f"Malformed page at startAt={start_at}: {e}")
                yield IssueBatch.failure(e, start_at)
                malformed_streak += 1
                pages_fetched += 1
                start_at += config.page_size
                if total is None and malformed_streak > config.max_malformed_pages:
                    logger.error(
                        f"Giving up after {malformed_streak} consecutive malformed pages"
                    )
                    return
                if total is not None and start_at >= total:
                    return
                if config.max_pages and pages_fetched >= config.max_pages:
                    logger.info(f"Reached max_pages limit ({config.max_pages})")
                    return
                continue
            except AuthenticationError as e:
                logger.error(f"Authentication failed, ending issue stream: {e}")
                yield IssueBatch.failure(e, start_at)
                return
            except JiraSyncError as e:
                if is_retryable_fetch_error(e):
                    logger.warning(f"Retryable failure at startAt={start_at}: {e}")
                    yield IssueBatch.failure(e, start_at)
                    # Next pull re-requests the same page
                    continue
                logger.error(f"Fatal failure at startAt={start_at}, ending issue stream: {e}")
                yield IssueBatch.failure(e, start_at)
                return

            malformed_streak = 0
            pages_fetched += 1

            if total is None and isinstance(data.get("total"), int):
                total = data["total"]
                logger.info(f"Paginating {self.ENDPOINT}: {total:,} total issues")

            if not issues:
                break

            yield IssueBatch(records=issues, start_at=start_at)

            fetched_count = start_at + len(issues)
            if total:
                logger.debug(f"Progress: {fetched_count:,}/{total:,}")

            if data.get("isLast") is True:
                break
            if total is not None and fetched_count >= total:
                break
            if len(issues) < config.page_size:
                break
            if config.max_pages and pages_fetched >= config.max_pages:
                logger.info(f"Reached max_pages limit ({config.max_pages})")
                break

            start_at = fetched_count

            if config.delay_between_pages > 0:
                await asyncio.sleep(config.delay_between_pages)

        logger.info(f"Issue stream complete after {pages_fetched} pages")

    def _extract_issues(self, data: Any, start_at: int) -> list[dict[str, Any]]:
        if not isinstance(data, dict) or not isinstance(data.get("issues"), list):
            raise MalformedPayloadError(
                "Search response has no 'issues' list",
                endpoint=self.ENDPOINT,
                start_at=start_at,
            )
        return data["issues"]


class JiraProjectAPI(IProjectAPI):
    """Jira Cloud adapter for fetching the project list."""

    ENDPOINT = "/rest/api/3/project"

    def __init__(self, client: "JiraClient"):
        self.client = client

    async def fetch_projects(self) -> list[dict[str, Any]]:
        """Fetch all projects visible to the configured account.

        Raises:
            MalformedPayloadError: If the response is not a list
            JiraSyncError: On any other fetch failure
        """
        data = await self.client.get(self.ENDPOINT)
        if not isinstance(data, list):
            raise MalformedPayloadError(
                "Project response is not a list",
                endpoint=self.ENDPOINT,
            )
        logger.info(f"Fetched {len(data)} projects")
        return data
