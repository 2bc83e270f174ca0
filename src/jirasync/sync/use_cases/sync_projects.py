"""Sync Projects Use Case - Orchestrates the project sync workflow.

Workflow:
1. Fetch all projects from the API (via IProjectAPI), retrying rate
   limits and transient failures within the retry budget
2. Map raw responses to Project entities (via IProjectFieldMapper)
3. Upsert all projects in one transaction
4. Return the SyncReport
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ...exceptions import JiraSyncError, RecordValidationError, is_retryable_fetch_error
from ..domain.entities import Project, SyncFailure, SyncReport
from ..domain.ports import (
    IProjectAPI,
    IProjectFieldMapper,
    IProjectRepository,
    ITransactionExecutor,
)
from .errors import Phase, ProjectSyncError
from .sync_issues import retry_delay_for

if TYPE_CHECKING:
    from ...config import SyncConfig

logger = logging.getLogger(__name__)


class SyncProjectsUseCase:
    """Orchestrates the project sync workflow.

    Example:
        use_case = SyncProjectsUseCase(
            project_api=JiraProjectAPI(client),
            project_repo=PostgresProjectRepository(pool),
            transaction_executor=PostgresTransactionExecutor(pool),
            field_mapper=ProjectFieldMapper(),
        )
        report = await use_case.execute()
    """

    def __init__(
        self,
        project_api: IProjectAPI,
        project_repo: IProjectRepository,
        transaction_executor: ITransactionExecutor,
        field_mapper: IProjectFieldMapper,
        config: "SyncConfig | None" = None,
    ):
        self.api = project_api
        self.repo = project_repo
        self.tx = transaction_executor
        self.mapper = field_mapper
        if config is None:
            from ...config import SyncConfig
            config = SyncConfig()
        self.config = config

    async def execute(self) -> SyncReport:
        """Execute the project sync workflow.

        Returns:
            SyncReport with counts and records that failed validation

        Raises:
            ProjectSyncError: Phase FETCH if the projects cannot be
                fetched, PERSIST if the transaction fails
        """
        report = SyncReport()
        logger.info(f"Starting project sync at {report.started_at.isoformat()}")

        raw_projects = await self._fetch_with_retry()
        report.records_fetched = len(raw_projects)
        logger.info(f"Fetched {len(raw_projects)} projects from API")

        projects: list[Project] = []
        for raw in raw_projects:
            try:
                projects.append(self.mapper.map_to_entity(raw))
            except RecordValidationError as e:
                label = _project_label(raw)
                logger.warning(f"Mapping error for project {label or 'unknown'}: {e}")
                report.record_failure(SyncFailure.from_exception(0, e, record_id=label))

        if not projects:
            logger.info("No valid projects to sync")
            return report.complete()

        async def work() -> list[Project]:
            return await self.repo.bulk_upsert(projects)

        try:
            persisted = await self.tx.run_in_transaction(work)
        except JiraSyncError as e:
            logger.error(f"Failed to persist projects: {e}")
            raise ProjectSyncError("Failed to persist projects", Phase.PERSIST, cause=e)

        report.persisted = len(persisted)
        report.batches_committed = 1
        report.complete()
        logger.info(
            f"Project sync completed in {report.duration_seconds:.2f}s: "
            f"{report.persisted} persisted, {len(report.failures)} failures"
        )
        return report

    async def _fetch_with_retry(self) -> list[dict[str, Any]]:
        attempts = 0
        while True:
            try:
                return await self.api.fetch_projects()
            except JiraSyncError as e:
                if is_retryable_fetch_error(e) and attempts < self.config.max_batch_retries:
                    attempts += 1
                    delay = retry_delay_for(e, attempts, self.config)
                    logger.warning(
                        f"Project fetch failed ({e}); retrying in {delay:.1f}s "
                        f"(attempt {attempts}/{self.config.max_batch_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"Failed to fetch projects: {e}")
                raise ProjectSyncError("Failed to fetch projects", Phase.FETCH, cause=e)


def _project_label(raw: Any) -> str | None:
    if isinstance(raw, dict):
        label = raw.get("key") or raw.get("id")
        return str(label) if label is not None else None
    return None
