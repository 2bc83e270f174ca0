"""Tests for the SyncProjectsUseCase."""

from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from src.jirasync.config import SyncConfig
from src.jirasync.exceptions import (
    AuthenticationError,
    MalformedPayloadError,
    NetworkError,
    TransactionError,
)
from src.jirasync.sync.adapters.field_mapper import ProjectFieldMapper
from src.jirasync.sync.domain.entities import Project
from src.jirasync.sync.domain.ports import IProjectAPI, IProjectRepository, ITransactionExecutor
from src.jirasync.sync.use_cases.errors import Phase, ProjectSyncError
from src.jirasync.sync.use_cases.sync_projects import SyncProjectsUseCase

SLEEP = "src.jirasync.sync.use_cases.sync_projects.asyncio.sleep"


class MockProjectAPI(IProjectAPI):
    """Returns scripted responses; exceptions in the script are raised."""

    def __init__(self, responses: list[Any]):
        self.responses = list(responses)
        self.calls = 0

    async def fetch_projects(self) -> list[dict[str, Any]]:
        self.calls += 1
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class MockProjectRepository(IProjectRepository):
    """In-memory IProjectRepository keyed by project id."""

    def __init__(self):
        self.rows: dict[int, Project] = {}

    async def find_all_project_keys(self):
        return sorted((p.key for p in self.rows.values()), key=lambda k: k.value)

    async def find_by_id(self, project_id):
        return self.rows.get(project_id.value)

    async def create(self, project):
        self.rows[project.id.value] = project
        return project

    async def update(self, project):
        self.rows[project.id.value] = project
        return project

    async def bulk_upsert(self, projects):
        for project in projects:
            self.rows[project.id.value] = project
        return list(projects)


class MockTransactionExecutor(ITransactionExecutor):
    def __init__(self, raise_error: Exception | None = None):
        self.raise_error = raise_error

    async def run_in_transaction(self, work):
        if self.raise_error:
            raise self.raise_error
        return await work()


RAW_PROJECTS = [
    {"id": "10000", "key": "ALPHA", "name": "Alpha"},
    {"id": "10001", "key": "BETA", "name": "Beta"},
]


def build_use_case(api, repo=None, tx=None):
    return SyncProjectsUseCase(
        project_api=api,
        project_repo=repo or MockProjectRepository(),
        transaction_executor=tx or MockTransactionExecutor(),
        field_mapper=ProjectFieldMapper(),
        config=SyncConfig(max_batch_retries=2, retry_backoff_seconds=0.5),
    )


class TestSyncProjectsUseCase:
    """Tests for SyncProjectsUseCase."""

    @pytest.mark.asyncio
    async def test_sync_persists_all_projects(self):
        repo = MockProjectRepository()
        use_case = build_use_case(MockProjectAPI([RAW_PROJECTS]), repo)

        report = await use_case.execute()

        assert report.success is True
        assert report.persisted == 2
        assert report.batches_committed == 1
        assert [k.value for k in await repo.find_all_project_keys()] == ["ALPHA", "BETA"]

    @pytest.mark.asyncio
    async def test_sync_is_idempotent(self):
        repo = MockProjectRepository()
        use_case = build_use_case(MockProjectAPI([RAW_PROJECTS, RAW_PROJECTS]), repo)

        await use_case.execute()
        await use_case.execute()

        assert len(repo.rows) == 2

    @pytest.mark.asyncio
    async def test_invalid_project_recorded(self):
        raw = RAW_PROJECTS + [{"id": "10002", "key": "bad key", "name": "Broken"}]
        use_case = build_use_case(MockProjectAPI([raw]))

        report = await use_case.execute()

        assert report.persisted == 2
        assert report.records_fetched == 3
        assert report.failures[0].record_id == "bad key"
        assert report.success is False

    @pytest.mark.asyncio
    async def test_no_valid_projects_skips_transaction(self):
        tx = MockTransactionExecutor(raise_error=TransactionError())
        use_case = build_use_case(MockProjectAPI([[]]), tx=tx)

        report = await use_case.execute()

        assert report.persisted == 0
        assert report.batches_committed == 0

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self):
        api = MockProjectAPI([NetworkError("reset"), RAW_PROJECTS])
        use_case = build_use_case(api)

        with patch(SLEEP, new=AsyncMock()) as sleep:
            report = await use_case.execute()

        sleep.assert_awaited_once_with(0.5)
        assert api.calls == 2
        assert report.persisted == 2

    @pytest.mark.asyncio
    async def test_retry_budget_exhausted(self):
        api = MockProjectAPI([NetworkError("reset")] * 3)
        use_case = build_use_case(api)

        with patch(SLEEP, new=AsyncMock()):
            with pytest.raises(ProjectSyncError) as exc_info:
                await use_case.execute()

        assert exc_info.value.phase == Phase.FETCH
        assert api.calls == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [AuthenticationError(status_code=403), MalformedPayloadError("not a list")],
    )
    async def test_fatal_fetch_errors(self, error):
        api = MockProjectAPI([error])
        use_case = build_use_case(api)

        with pytest.raises(ProjectSyncError) as exc_info:
            await use_case.execute()

        assert exc_info.value.phase == Phase.FETCH
        assert exc_info.value.cause is error
        assert api.calls == 1

    @pytest.mark.asyncio
    async def test_persist_failure(self):
        tx = MockTransactionExecutor(raise_error=TransactionError(operation="execute"))
        use_case = build_use_case(MockProjectAPI([RAW_PROJECTS]), tx=tx)

        with pytest.raises(ProjectSyncError) as exc_info:
            await use_case.execute()

        assert exc_info.value.phase == Phase.PERSIST
        assert exc_info.value.to_dict()["operation"] == "project_sync"
