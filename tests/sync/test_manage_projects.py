"""Tests for the project create and update use cases."""

import pytest

from src.jirasync.exceptions import IntegrityError, QueryError
from src.jirasync.sync.domain.entities import Project
from src.jirasync.sync.domain.ports import IProjectRepository, ITransactionExecutor
from src.jirasync.sync.use_cases.errors import (
    Phase,
    ProjectCreateError,
    ProjectNotFoundError,
    ProjectUpdateError,
)
from src.jirasync.sync.use_cases.manage_projects import (
    CreateProjectInput,
    CreateProjectUseCase,
    UpdateProjectInput,
    UpdateProjectUseCase,
)


class MockProjectRepository(IProjectRepository):
    """In-memory project store that rejects duplicate ids on create."""

    def __init__(self, projects: list[Project] | None = None, lookup_error: Exception | None = None):
        self.rows = {p.id.value: p for p in projects or []}
        self.lookup_error = lookup_error
        self.calls = 0

    async def find_all_project_keys(self):
        return [p.key for p in self.rows.values()]

    async def find_by_id(self, project_id):
        self.calls += 1
        if self.lookup_error:
            raise self.lookup_error
        return self.rows.get(project_id.value)

    async def create(self, project):
        self.calls += 1
        if project.id.value in self.rows:
            raise IntegrityError(constraint="jira_projects_pkey")
        self.rows[project.id.value] = project
        return project

    async def update(self, project):
        self.calls += 1
        self.rows[project.id.value] = project
        return project

    async def bulk_upsert(self, projects):
        return list(projects)


class MockTransactionExecutor(ITransactionExecutor):
    def __init__(self):
        self.transactions = 0

    async def run_in_transaction(self, work):
        self.transactions += 1
        return await work()


class TestCreateProjectUseCase:
    """Tests for CreateProjectUseCase."""

    @pytest.mark.asyncio
    async def test_create(self):
        repo, tx = MockProjectRepository(), MockTransactionExecutor()

        project = await CreateProjectUseCase(repo, tx).execute(
            CreateProjectInput(id="10000", key="PROJ", name="Project")
        )

        assert project.id.value == 10000
        assert repo.rows[10000] == project
        assert tx.transactions == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "data",
        [
            CreateProjectInput(id="x", key="PROJ", name="Project"),
            CreateProjectInput(id="1", key="proj", name="Project"),
            CreateProjectInput(id="1", key="PROJ", name=""),
            CreateProjectInput(id="1", key="PROJ", name="n" * 256),
        ],
    )
    async def test_invalid_input_rejected_before_io(self, data):
        repo, tx = MockProjectRepository(), MockTransactionExecutor()

        with pytest.raises(ProjectCreateError) as exc_info:
            await CreateProjectUseCase(repo, tx).execute(data)

        assert exc_info.value.phase == Phase.VALIDATION
        assert repo.calls == 0
        assert tx.transactions == 0

    @pytest.mark.asyncio
    async def test_duplicate_id(self):
        repo = MockProjectRepository([Project.of(1, "PROJ", "Existing")])

        with pytest.raises(ProjectCreateError) as exc_info:
            await CreateProjectUseCase(repo, MockTransactionExecutor()).execute(
                CreateProjectInput(id=1, key="NEW", name="New")
            )

        assert exc_info.value.phase == Phase.PERSIST
        assert isinstance(exc_info.value.cause, IntegrityError)


class TestUpdateProjectUseCase:
    """Tests for UpdateProjectUseCase."""

    @pytest.mark.asyncio
    async def test_update(self):
        repo = MockProjectRepository([Project.of(1, "OLD", "Old name")])

        project = await UpdateProjectUseCase(repo, MockTransactionExecutor()).execute(
            UpdateProjectInput(id="1", key="NEW", name="New name")
        )

        assert project.key.value == "NEW"
        assert repo.rows[1].name.value == "New name"

    @pytest.mark.asyncio
    async def test_not_found(self):
        tx = MockTransactionExecutor()

        with pytest.raises(ProjectNotFoundError) as exc_info:
            await UpdateProjectUseCase(MockProjectRepository(), tx).execute(
                UpdateProjectInput(id=5, key="NEW", name="New")
            )

        assert exc_info.value.project_id == 5
        assert exc_info.value.operation == "project_update"
        assert tx.transactions == 0

    @pytest.mark.asyncio
    async def test_invalid_input(self):
        repo = MockProjectRepository()

        with pytest.raises(ProjectUpdateError) as exc_info:
            await UpdateProjectUseCase(repo, MockTransactionExecutor()).execute(
                UpdateProjectInput(id="1", key="bad key", name="x")
            )

        assert exc_info.value.phase == Phase.VALIDATION
        assert repo.calls == 0

    @pytest.mark.asyncio
    async def test_lookup_failure(self):
        repo = MockProjectRepository(lookup_error=QueryError(table="jira_projects"))

        with pytest.raises(ProjectUpdateError) as exc_info:
            await UpdateProjectUseCase(repo, MockTransactionExecutor()).execute(
                UpdateProjectInput(id="1", key="NEW", name="x")
            )

        assert exc_info.value.phase == Phase.FETCH
        assert not isinstance(exc_info.value, ProjectNotFoundError)
