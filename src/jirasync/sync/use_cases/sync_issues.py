"""Sync Issues Use Case - Orchestrates the streaming issue sync workflow.

This use case implements the business logic for syncing issues from the
Jira API to the database. It depends on ports (interfaces) for all
external operations, making it fully testable without infrastructure.

Workflow:
1. Resolve project keys from the database (outside any transaction)
2. Open the issue stream (via IIssueAPI)
3. For each batch, in fetch order:
   a. Failed batch: wait and pull again while the retry budget lasts,
      record and skip a malformed page, or stop on a fatal error
   b. Map raw records to entities (via IIssueFieldMapper), recording
      records that fail validation
   c. Persist the batch in its own transaction (via ITransactionExecutor)
   d. Stop early if cancellation was requested
4. Return the SyncReport
"""

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ...exceptions import (
    JiraSyncError,
    MalformedPayloadError,
    RateLimitError,
    RecordValidationError,
    is_retryable_fetch_error,
)
from ..domain.entities import Issue, SyncFailure, SyncReport
from ..domain.ports import (
    IIssueAPI,
    IIssueFieldMapper,
    IIssueRepository,
    IProjectRepository,
    ITransactionExecutor,
)
from .errors import IssueSyncError, Phase

if TYPE_CHECKING:
    from ...config import SyncConfig

logger = logging.getLogger(__name__)


def retry_delay_for(error: BaseException, attempt: int, config: "SyncConfig") -> float:
    """Seconds to wait before re-pulling after a retryable failure.

    A rate limit with a Retry-After hint is honoured; anything else backs
    off exponentially from retry_backoff_seconds. Both are capped at
    max_backoff_seconds.
    """
    if isinstance(error, RateLimitError) and error.retry_after is not None:
        return min(error.retry_after, config.max_backoff_seconds)
    delay = config.retry_backoff_seconds * (2 ** (attempt - 1))
    return min(delay, config.max_backoff_seconds)


def _record_label(raw: Any) -> str | None:
    if isinstance(raw, dict):
        label = raw.get("key") or raw.get("id")
        return str(label) if label is not None else None
    return None


class SyncIssuesUseCase:
    """Orchestrates the issue sync workflow.

    Fetching happens outside any transaction; each batch is written in
    its own transaction, so a failure in batch N leaves batches before N
    committed.

    Example:
        use_case = SyncIssuesUseCase(
            issue_api=JiraIssueAPI(client),
            issue_repo=PostgresIssueRepository(pool),
            project_repo=PostgresProjectRepository(pool),
            transaction_executor=PostgresTransactionExecutor(pool),
            field_mapper=IssueFieldMapper(),
        )
        report = await use_case.execute(since)
    """

    def __init__(
        self,
        issue_api: IIssueAPI,
        issue_repo: IIssueRepository,
        project_repo: IProjectRepository,
        transaction_executor: ITransactionExecutor,
        field_mapper: IIssueFieldMapper,
        config: "SyncConfig | None" = None,
    ):
        """Initialize the use case with its dependencies.

        Args:
            issue_api: Port for streaming issues from the API
            issue_repo: Port for persisting issues
            project_repo: Port for resolving the project keys to sync
            transaction_executor: Port wrapping each batch in a transaction
            field_mapper: Port for transforming raw records to entities
            config: Retry budget and backoff (defaults to SyncConfig())
        """
        self.api = issue_api
        self.repo = issue_repo
        self.project_repo = project_repo
        self.tx = transaction_executor
        self.mapper = field_mapper
        if config is None:
            from ...config import SyncConfig
            config = SyncConfig()
        self.config = config

    async def execute(
        self,
        since: datetime,
        cancel_event: asyncio.Event | None = None,
    ) -> SyncReport:
        """Execute the issue sync workflow.

        Args:
            since: Sync issues updated since this instant
            cancel_event: Set it to stop after the batch being persisted

        Returns:
            SyncReport with counts and non-fatal failures

        Raises:
            IssueSyncError: Phase KEY_RESOLUTION if project keys cannot be
                loaded, FETCH on authentication failure or an exhausted
                retry budget, PERSIST if a batch transaction fails. The
                error carries the partial report.
        """
        report = SyncReport()
        logger.info(f"Starting issue sync for updates since {since.isoformat()}")

        try:
            project_keys = await self.project_repo.find_all_project_keys()
        except JiraSyncError as e:
            logger.error(f"Failed to resolve project keys: {e}")
            raise IssueSyncError(
                "Failed to resolve project keys",
                Phase.KEY_RESOLUTION,
                cause=e,
                report=report.complete(),
            )

        if not project_keys:
            logger.info("No projects stored, nothing to sync")
            return report.complete()

        logger.info(f"Syncing issues for {len(project_keys)} projects")

        stream = self.api.fetch_issues(project_keys, since)
        batch_index = 0
        attempts = 0
        try:
            async for batch in stream:
                if not batch.ok:
                    error = batch.error
                    if isinstance(error, MalformedPayloadError):
                        logger.warning(f"Skipping malformed batch {batch_index}: {error}")
                        report.record_failure(SyncFailure.from_exception(batch_index, error))
                        batch_index += 1
                        attempts = 0
                        continue

                    if is_retryable_fetch_error(error) and attempts < self.config.max_batch_retries:
                        attempts += 1
                        delay = retry_delay_for(error, attempts, self.config)
                        logger.warning(
                            f"Batch {batch_index} failed ({error}); retrying in {delay:.1f}s "
                            f"(attempt {attempts}/{self.config.max_batch_retries})"
                        )
                        await asyncio.sleep(delay)
                        continue

                    logger.error(f"Issue fetch failed at batch {batch_index}: {error}")
                    raise IssueSyncError(
                        f"Failed to fetch batch {batch_index}",
                        Phase.FETCH,
                        cause=error,
                        report=report.complete(),
                    )

                attempts = 0
                report.records_fetched += len(batch.records)
                issues = self._map_batch(batch_index, batch.records, report)
                if issues:
                    await self._persist_batch(batch_index, issues, report)

                batch_index += 1

                if cancel_event is not None and cancel_event.is_set():
                    logger.info(f"Cancellation requested, stopping after batch {batch_index - 1}")
                    report.cancelled = True
                    break

        except JiraSyncError as e:
            logger.error(f"Issue stream failed: {e}")
            raise IssueSyncError(
                "Issue stream failed",
                Phase.FETCH,
                cause=e,
                report=report.complete(),
            )

        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        report.complete()
        logger.info(
            f"Issue sync completed in {report.duration_seconds:.2f}s: "
            f"{report.persisted} persisted in {report.batches_committed} batches, "
            f"{len(report.failures)} failures"
        )
        return report

    def _map_batch(
        self,
        batch_index: int,
        records: list[dict[str, Any]],
        report: SyncReport,
    ) -> list[Issue]:
        issues: list[Issue] = []
        for raw in records:
            try:
                issues.append(self.mapper.map_to_entity(raw))
            except RecordValidationError as e:
                label = _record_label(raw)
                logger.warning(f"Mapping error for issue {label or 'unknown'}: {e}")
                report.record_failure(SyncFailure.from_exception(batch_index, e, record_id=label))
        return issues

    async def _persist_batch(
        self,
        batch_index: int,
        issues: list[Issue],
        report: SyncReport,
    ) -> None:
        async def work() -> list[Issue]:
            return await self.repo.bulk_upsert(issues)

        try:
            persisted = await self.tx.run_in_transaction(work)
        except JiraSyncError as e:
            logger.error(f"Failed to persist batch {batch_index}: {e}")
            raise IssueSyncError(
                f"Failed to persist batch {batch_index}",
                Phase.PERSIST,
                cause=e,
                report=report.complete(),
            )

        report.persisted += len(persisted)
        report.batches_committed += 1
        logger.debug(f"Committed batch {batch_index}: {len(persisted)} issues")
