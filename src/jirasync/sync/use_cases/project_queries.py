"""Project Query Use Cases - Read-side access to synced projects."""

import logging
from typing import Any, Iterable

from ...exceptions import JiraSyncError, RecordValidationError
from ..domain.ports import IProjectQueryRepository
from ..domain.projections import Page, ProjectQueryDTO
from ..domain.value_objects import ProjectId
from .errors import FindByIdsQueryError, ListQueryError, Phase
from .issue_queries import parse_ids, validate_pagination

logger = logging.getLogger(__name__)


class FindProjectsByIdsQueryUseCase:
    """Look up projects by id, ordered by id ascending."""

    def __init__(self, query_repo: IProjectQueryRepository):
        self.repo = query_repo

    async def execute(self, ids: Iterable[Any]) -> list[ProjectQueryDTO]:
        try:
            project_ids = parse_ids(
                ids, lambda raw: raw if isinstance(raw, ProjectId) else ProjectId.of(raw)
            )
        except RecordValidationError as e:
            raise FindByIdsQueryError("Invalid project id", Phase.VALIDATION, cause=e)

        if not project_ids:
            return []

        try:
            return await self.repo.find_by_ids(project_ids)
        except JiraSyncError as e:
            logger.error(f"Failed to find projects by id: {e}")
            raise FindByIdsQueryError("Failed to fetch projects", Phase.FETCH, cause=e)


class ListProjectsQueryUseCase:
    """List projects one page at a time, ordered by id ascending."""

    def __init__(self, query_repo: IProjectQueryRepository):
        self.repo = query_repo

    async def execute(
        self,
        page_number: int | None = None,
        page_size: int | None = None,
    ) -> Page[ProjectQueryDTO]:
        number, size = validate_pagination(page_number, page_size)

        try:
            return await self.repo.list(number, size)
        except JiraSyncError as e:
            logger.error(f"Failed to list projects: {e}")
            raise ListQueryError("Failed to fetch projects", Phase.FETCH, cause=e)
