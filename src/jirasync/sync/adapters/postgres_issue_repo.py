"""PostgreSQL repository adapter for issue persistence.

This adapter implements IIssueRepository. It never opens or commits a
transaction: writes run on the connection of the active transaction
scope (see api.database.connection_scope), so the caller decides the
unit of work.
"""

import logging

import asyncpg

from ...api.database import connection_scope
from ...exceptions import DatabaseError, PersistError
from ..domain.entities import Issue
from ..domain.ports import IIssueFieldMapper, IIssueRepository
from .field_mapper import IssueFieldMapper

logger = logging.getLogger(__name__)

# Rows are only overwritten by an equal or newer version of the issue.
UPSERT_ISSUES_SQL = """
    INSERT INTO jira_issues (
        id, project_id, key, summary, description,
        issue_type, priority, parent_id,
        created_at, updated_at, synced_at
    ) VALUES (
        $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, NOW()
    )
    ON CONFLICT (id) DO UPDATE SET
        project_id = EXCLUDED.project_id,
        summary = EXCLUDED.summary,
        description = EXCLUDED.description,
        issue_type = EXCLUDED.issue_type,
        priority = EXCLUDED.priority,
        parent_id = EXCLUDED.parent_id,
        updated_at = EXCLUDED.updated_at,
        synced_at = NOW()
    WHERE jira_issues.updated_at <= EXCLUDED.updated_at
"""


class PostgresIssueRepository(IIssueRepository):
    """PostgreSQL implementation of IIssueRepository.

    Uses a single executemany() of INSERT ON CONFLICT per batch.
    """

    TABLE = "jira_issues"

    def __init__(
        self,
        pool: asyncpg.Pool,
        field_mapper: IIssueFieldMapper | None = None,
    ):
        """Initialize the repository.

        Args:
            pool: asyncpg connection pool, used when no transaction is active
            field_mapper: Mapper producing record tuples (defaults to IssueFieldMapper)
        """
        self.pool = pool
        self.field_mapper = field_mapper or IssueFieldMapper()

    async def bulk_upsert(self, issues: list[Issue]) -> list[Issue]:
        """Bulk upsert issues keyed by id.

        Args:
            issues: Non-empty list of Issue entities

        Returns:
            The issues submitted for writing

        Raises:
            ValueError: If issues is empty
            PersistError: If the write fails
        """
        if not issues:
            raise ValueError("bulk_upsert requires at least one issue")

        records = [self.field_mapper.map_to_record(issue) for issue in issues]

        try:
            async with connection_scope(self.pool) as conn:
                await conn.executemany(UPSERT_ISSUES_SQL, records)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, DatabaseError, OSError) as e:
            raise PersistError(
                f"Failed to upsert {len(records)} issues: {e}",
                table=self.TABLE,
                cause=e,
            )

        logger.debug(f"Upserted {len(records)} issues")
        return list(issues)
