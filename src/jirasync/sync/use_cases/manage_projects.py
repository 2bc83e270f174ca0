"""Project command use cases - create and update projects by hand.

Inputs arrive as raw strings (from the CLI or REST API) and are validated
into value objects before anything touches the database.
"""

import logging
from dataclasses import dataclass
from typing import Any

from ...exceptions import JiraSyncError, RecordValidationError
from ..domain.entities import Project
from ..domain.ports import IProjectRepository, ITransactionExecutor
from ..domain.value_objects import ProjectId, ProjectKey, ProjectName
from .errors import Phase, ProjectCreateError, ProjectNotFoundError, ProjectUpdateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateProjectInput:
    """Raw input for creating a project."""

    id: Any
    key: str
    name: str


@dataclass(frozen=True)
class UpdateProjectInput:
    """Raw input for updating a project's key and name."""

    id: Any
    key: str
    name: str


class CreateProjectUseCase:
    """Validate and insert a new project in one transaction."""

    def __init__(
        self,
        project_repo: IProjectRepository,
        transaction_executor: ITransactionExecutor,
    ):
        self.repo = project_repo
        self.tx = transaction_executor

    async def execute(self, data: CreateProjectInput) -> Project:
        """Create a project.

        Raises:
            ProjectCreateError: Phase VALIDATION for invalid input,
                PERSIST if the insert fails (including duplicate ids)
        """
        try:
            project = Project.of(data.id, data.key, data.name)
        except RecordValidationError as e:
            raise ProjectCreateError("Invalid project", Phase.VALIDATION, cause=e)

        async def work() -> Project:
            return await self.repo.create(project)

        try:
            created = await self.tx.run_in_transaction(work)
        except JiraSyncError as e:
            logger.error(f"Failed to create project {project.key}: {e}")
            raise ProjectCreateError("Failed to persist project", Phase.PERSIST, cause=e)

        logger.info(f"Project {created.key} ({created.id}) created")
        return created


class UpdateProjectUseCase:
    """Rename an existing project in one transaction."""

    def __init__(
        self,
        project_repo: IProjectRepository,
        transaction_executor: ITransactionExecutor,
    ):
        self.repo = project_repo
        self.tx = transaction_executor

    async def execute(self, data: UpdateProjectInput) -> Project:
        """Update a project's key and name.

        Raises:
            ProjectUpdateError: Phase VALIDATION for invalid input, FETCH
                if the lookup fails, PERSIST if the update fails
            ProjectNotFoundError: If no project has the given id
        """
        try:
            project_id = ProjectId.of(data.id)
            key = ProjectKey.of(data.key)
            name = ProjectName.of(data.name)
        except RecordValidationError as e:
            raise ProjectUpdateError("Invalid project", Phase.VALIDATION, cause=e)

        try:
            existing = await self.repo.find_by_id(project_id)
        except JiraSyncError as e:
            logger.error(f"Failed to load project {project_id}: {e}")
            raise ProjectUpdateError("Failed to load project", Phase.FETCH, cause=e)

        if existing is None:
            raise ProjectNotFoundError(project_id.value)

        updated = existing.rename(key, name)

        async def work() -> Project:
            return await self.repo.update(updated)

        try:
            result = await self.tx.run_in_transaction(work)
        except JiraSyncError as e:
            logger.error(f"Failed to update project {project_id}: {e}")
            raise ProjectUpdateError("Failed to persist project", Phase.PERSIST, cause=e)

        logger.info(f"Project {project_id} updated to {result.key}")
        return result
