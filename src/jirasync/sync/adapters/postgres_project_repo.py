"""PostgreSQL repository adapter for project persistence."""

import logging

import asyncpg

from ...api.database import connection_scope
from ...exceptions import DatabaseError, PersistError, QueryError
from ..domain.entities import Project
from ..domain.ports import IProjectRepository
from ..domain.value_objects import ProjectId, ProjectKey

logger = logging.getLogger(__name__)

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, DatabaseError, OSError)


class PostgresProjectRepository(IProjectRepository):
    """PostgreSQL implementation of IProjectRepository.

    Reads outside a transaction use a pooled connection; writes join the
    active transaction scope.
    """

    TABLE = "jira_projects"

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def find_all_project_keys(self) -> list[ProjectKey]:
        try:
            async with connection_scope(self.pool) as conn:
                rows = await conn.fetch(f"SELECT key FROM {self.TABLE} ORDER BY key")
        except _DB_ERRORS as e:
            raise QueryError(
                f"Failed to load project keys: {e}", table=self.TABLE, cause=e
            )
        return [ProjectKey(row["key"]) for row in rows]

    async def find_by_id(self, project_id: ProjectId) -> Project | None:
        try:
            async with connection_scope(self.pool) as conn:
                row = await conn.fetchrow(
                    f"SELECT id, key, name FROM {self.TABLE} WHERE id = $1",
                    project_id.value,
                )
        except _DB_ERRORS as e:
            raise QueryError(
                f"Failed to load project {project_id}: {e}", table=self.TABLE, cause=e
            )
        if row is None:
            return None
        return Project.of(row["id"], row["key"], row["name"])

    async def create(self, project: Project) -> Project:
        try:
            async with connection_scope(self.pool) as conn:
                await conn.execute(
                    f"""
                    INSERT INTO {self.TABLE} (id, key, name, synced_at)
                    VALUES ($1, $2, $3, NOW())
                    """,
                    project.id.value,
                    project.key.value,
                    project.name.value,
                )
        except _DB_ERRORS as e:
            raise PersistError(
                f"Failed to create project {project.key}: {e}", table=self.TABLE, cause=e
            )
        logger.info(f"Created project {project.key} ({project.id})")
        return project

    async def update(self, project: Project) -> Project:
        try:
            async with connection_scope(self.pool) as conn:
                status = await conn.execute(
                    f"""
                    UPDATE {self.TABLE}
                    SET key = $2, name = $3, synced_at = NOW()
                    WHERE id = $1
                    """,
                    project.id.value,
                    project.key.value,
                    project.name.value,
                )
        except _DB_ERRORS as e:
            raise PersistError(
                f"Failed to update project {project.id}: {e}", table=self.TABLE, cause=e
            )
        # asyncpg returns the command tag, e.g. "UPDATE 1"
        if status == "UPDATE 0":
            raise PersistError(
                f"Project {project.id} does not exist", table=self.TABLE
            )
        logger.info(f"Updated project {project.id} -> {project.key}")
        return project

    async def bulk_upsert(self, projects: list[Project]) -> list[Project]:
        if not projects:
            raise ValueError("bulk_upsert requires at least one project")

        records = [(p.id.value, p.key.value, p.name.value) for p in projects]
        try:
            async with connection_scope(self.pool) as conn:
                await conn.executemany(
                    f"""
                    INSERT INTO {self.TABLE} (id, key, name, synced_at)
                    VALUES ($1, $2, $3, NOW())
                    ON CONFLICT (id) DO UPDATE SET
                        key = EXCLUDED.key,
                        name = EXCLUDED.name,
                        synced_at = NOW()
                    """,
                    records,
                )
        except _DB_ERRORS as e:
            raise PersistError(
                f"Failed to upsert {len(records)} projects: {e}", table=self.TABLE, cause=e
            )
        logger.debug(f"Upserted {len(records)} projects")
        return list(projects)
