"""PostgreSQL query repositories for the read side.

Rows are mapped straight into projections; no entity is ever built here.
Every query runs on its own pooled connection, outside any transaction,
so reads can proceed while a sync is writing.
"""

import logging
from typing import Any

import asyncpg

from ...api.database import database_connection
from ...exceptions import DatabaseError, QueryError
from ..domain.ports import IIssueQueryRepository, IProjectQueryRepository
from ..domain.projections import IssueQueryDTO, Page, ProjectQueryDTO
from ..domain.value_objects import IssueId, PageNumber, PageSize, ProjectId

logger = logging.getLogger(__name__)

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, DatabaseError, OSError)

ISSUE_COLUMNS = (
    "id, project_id, key, summary, description, issue_type, priority, "
    "parent_id, created_at, updated_at"
)


def _issue_row_to_dto(row: Any) -> IssueQueryDTO:
    return IssueQueryDTO(
        id=row["id"],
        project_id=row["project_id"],
        key=row["key"],
        summary=row["summary"],
        description=row["description"],
        issue_type=row["issue_type"],
        priority=row["priority"],
        parent_id=row["parent_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _project_row_to_dto(row: Any) -> ProjectQueryDTO:
    return ProjectQueryDTO(id=row["id"], key=row["key"], name=row["name"])


class PostgresIssueQueryRepository(IIssueQueryRepository):
    """Read-only issue queries, ordered by id ascending."""

    TABLE = "jira_issues"

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def find_by_ids(self, ids: list[IssueId]) -> list[IssueQueryDTO]:
        if not ids:
            return []
        try:
            async with database_connection(self.pool) as conn:
                rows = await conn.fetch(
                    f"SELECT {ISSUE_COLUMNS} FROM {self.TABLE} "
                    f"WHERE id = ANY($1::bigint[]) ORDER BY id",
                    [i.value for i in ids],
                )
        except _DB_ERRORS as e:
            raise QueryError(f"Failed to find issues by id: {e}", table=self.TABLE, cause=e)
        return [_issue_row_to_dto(row) for row in rows]

    async def list(self, page_number: PageNumber, page_size: PageSize) -> Page[IssueQueryDTO]:
        offset = page_size.offset_for(page_number)
        try:
            async with database_connection(self.pool) as conn:
                total = await conn.fetchval(f"SELECT COUNT(*) FROM {self.TABLE}")
                rows = await conn.fetch(
                    f"SELECT {ISSUE_COLUMNS} FROM {self.TABLE} "
                    f"ORDER BY id LIMIT $1 OFFSET $2",
                    page_size.value,
                    offset,
                )
        except _DB_ERRORS as e:
            raise QueryError(f"Failed to list issues: {e}", table=self.TABLE, cause=e)

        items = [_issue_row_to_dto(row) for row in rows]
        logger.debug(
            f"Listed issues page {page_number.value} (size {page_size.value}): "
            f"{len(items)} of {total}"
        )
        # Rows inserted between COUNT and SELECT must not break the page invariant
        return Page(
            items=items,
            total_count=max(int(total or 0), len(items)),
            page_number=page_number.value,
            page_size=page_size.value,
        )


class PostgresProjectQueryRepository(IProjectQueryRepository):
    """Read-only project queries, ordered by id ascending."""

    TABLE = "jira_projects"

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def find_by_ids(self, ids: list[ProjectId]) -> list[ProjectQueryDTO]:
        if not ids:
            return []
        try:
            async with database_connection(self.pool) as conn:
                rows = await conn.fetch(
                    f"SELECT id, key, name FROM {self.TABLE} "
                    f"WHERE id = ANY($1::bigint[]) ORDER BY id",
                    [i.value for i in ids],
                )
        except _DB_ERRORS as e:
            raise QueryError(f"Failed to find projects by id: {e}", table=self.TABLE, cause=e)
        return [_project_row_to_dto(row) for row in rows]

    async def list(self, page_number: PageNumber, page_size: PageSize) -> Page[ProjectQueryDTO]:
        offset = page_size.offset_for(page_number)
        try:
            async with database_connection(self.pool) as conn:
                total = await conn.fetchval(f"SELECT COUNT(*) FROM {self.TABLE}")
                rows = await conn.fetch(
                    f"SELECT id, key, name FROM {self.TABLE} ORDER BY id LIMIT $1 OFFSET $2",
                    page_size.value,
                    offset,
                )
        except _DB_ERRORS as e:
            raise QueryError(f"Failed to list projects: {e}", table=self.TABLE, cause=e)

        items = [_project_row_to_dto(row) for row in rows]
        return Page(
            items=items,
            total_count=max(int(total or 0), len(items)),
            page_number=page_number.value,
            page_size=page_size.value,
        )
