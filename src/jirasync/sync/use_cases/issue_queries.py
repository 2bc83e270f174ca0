"""Issue Query Use Cases - Read-side access to synced issues.

Query use cases validate their input before any I/O and delegate
directly to the query repository. They return projections, never
entities.
"""

import logging
from typing import Any, Iterable

from ...exceptions import JiraSyncError, RecordValidationError
from ..domain.ports import IIssueQueryRepository
from ..domain.projections import IssueQueryDTO, Page
from ..domain.value_objects import IssueId, PageNumber, PageSize
from .errors import FindByIdsQueryError, ListQueryError, PaginationValidationError, Phase

logger = logging.getLogger(__name__)


def validate_pagination(
    page_number: int | None,
    page_size: int | None,
) -> tuple[PageNumber, PageSize]:
    """Build pagination value objects, applying defaults for None.

    Raises:
        PaginationValidationError: If either value is out of range
    """
    try:
        return PageNumber.of(page_number), PageSize.of(page_size)
    except RecordValidationError as e:
        raise PaginationValidationError(e.message, cause=e)


def parse_ids(raw_ids: Iterable[Any], parse) -> list:
    """Parse raw ids, dropping duplicates while keeping first-seen order.

    Raises:
        RecordValidationError: On the first invalid id
    """
    seen = set()
    ids = []
    for raw in raw_ids:
        parsed = parse(raw)
        if parsed not in seen:
            seen.add(parsed)
            ids.append(parsed)
    return ids


class FindIssuesByIdsQueryUseCase:
    """Look up issues by id.

    Unknown ids are absent from the result; results are ordered by id.
    """

    def __init__(self, query_repo: IIssueQueryRepository):
        self.repo = query_repo

    async def execute(self, ids: Iterable[Any]) -> list[IssueQueryDTO]:
        """Find issues by id.

        Args:
            ids: IssueId values, ints, or numeric strings

        Returns:
            Matching issues ordered by id ascending; [] for no ids

        Raises:
            FindByIdsQueryError: Phase VALIDATION for an invalid id (no
                I/O is performed), FETCH if the repository fails
        """
        try:
            issue_ids = parse_ids(
                ids, lambda raw: raw if isinstance(raw, IssueId) else IssueId.of(raw)
            )
        except RecordValidationError as e:
            raise FindByIdsQueryError("Invalid issue id", Phase.VALIDATION, cause=e)

        if not issue_ids:
            return []

        try:
            return await self.repo.find_by_ids(issue_ids)
        except JiraSyncError as e:
            logger.error(f"Failed to find issues by id: {e}")
            raise FindByIdsQueryError("Failed to fetch issues", Phase.FETCH, cause=e)


class ListIssuesQueryUseCase:
    """List issues one page at a time, ordered by id ascending."""

    def __init__(self, query_repo: IIssueQueryRepository):
        self.repo = query_repo

    async def execute(
        self,
        page_number: int | None = None,
        page_size: int | None = None,
    ) -> Page[IssueQueryDTO]:
        """List one page of issues.

        Args:
            page_number: 1-based page number (default 1)
            page_size: Items per page, 1 to MAX_PAGE_SIZE (default DEFAULT_PAGE_SIZE)

        Raises:
            PaginationValidationError: If a parameter is out of range (no I/O)
            ListQueryError: Phase FETCH if the repository fails
        """
        number, size = validate_pagination(page_number, page_size)

        try:
            return await self.repo.list(number, size)
        except JiraSyncError as e:
            logger.error(f"Failed to list issues: {e}")
            raise ListQueryError("Failed to fetch issues", Phase.FETCH, cause=e)
