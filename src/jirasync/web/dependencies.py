"""FastAPI dependency injection for the query and sync API.

Lifecycle Management:
- Database pool: initialized at startup, shared across requests, closed
  at shutdown
- Jira client: opened per sync request, so query-only deployments need
  no Jira credentials

Tests replace any of these with ``app.dependency_overrides``.
"""

import logging
from collections.abc import AsyncIterator
from typing import Optional

import asyncpg

from ..api.client import JiraClient
from ..api.database import close_pool, create_pool_from_config
from ..config import DatabaseConfig, JiraApiConfig, SyncConfig
from ..sync.adapters import (
    IssueFieldMapper,
    JiraIssueAPI,
    JiraProjectAPI,
    PostgresIssueQueryRepository,
    PostgresIssueRepository,
    PostgresProjectQueryRepository,
    PostgresProjectRepository,
    PostgresTransactionExecutor,
    ProjectFieldMapper,
)
from ..sync.use_cases import (
    CreateProjectUseCase,
    FindIssuesByIdsQueryUseCase,
    FindProjectsByIdsQueryUseCase,
    ListIssuesQueryUseCase,
    ListProjectsQueryUseCase,
    SyncIssuesUseCase,
    SyncProjectsUseCase,
    UpdateProjectUseCase,
)

logger = logging.getLogger(__name__)

# ========== Global State ==========

# Global connection pool (initialized on startup)
_db_pool: Optional[asyncpg.Pool] = None


async def init_db_pool(config: Optional[DatabaseConfig] = None):
    """Initialize the database connection pool.

    Should be called on application startup.
    """
    global _db_pool
    _db_pool = await create_pool_from_config(config or DatabaseConfig.from_env())


async def close_db_pool():
    """Close the database connection pool.

    Should be called on application shutdown.
    """
    global _db_pool
    if _db_pool:
        await close_pool(_db_pool)
        _db_pool = None


def get_db_pool() -> asyncpg.Pool:
    """Get the database connection pool."""
    if _db_pool is None:
        raise RuntimeError("Database pool not initialized. Call init_db_pool() first.")
    return _db_pool


def get_db_pool_or_none() -> Optional[asyncpg.Pool]:
    return _db_pool


def get_sync_config() -> SyncConfig:
    return SyncConfig.from_env()


# ========== Query Use Cases ==========


def get_list_issues_use_case() -> ListIssuesQueryUseCase:
    return ListIssuesQueryUseCase(PostgresIssueQueryRepository(get_db_pool()))


def get_find_issues_use_case() -> FindIssuesByIdsQueryUseCase:
    return FindIssuesByIdsQueryUseCase(PostgresIssueQueryRepository(get_db_pool()))


def get_list_projects_use_case() -> ListProjectsQueryUseCase:
    return ListProjectsQueryUseCase(PostgresProjectQueryRepository(get_db_pool()))


def get_find_projects_use_case() -> FindProjectsByIdsQueryUseCase:
    return FindProjectsByIdsQueryUseCase(PostgresProjectQueryRepository(get_db_pool()))


# ========== Project Commands ==========


def get_create_project_use_case() -> CreateProjectUseCase:
    pool = get_db_pool()
    return CreateProjectUseCase(
        PostgresProjectRepository(pool), PostgresTransactionExecutor(pool)
    )


def get_update_project_use_case() -> UpdateProjectUseCase:
    pool = get_db_pool()
    return UpdateProjectUseCase(
        PostgresProjectRepository(pool), PostgresTransactionExecutor(pool)
    )


# ========== Sync Use Cases ==========


async def get_sync_projects_use_case() -> AsyncIterator[SyncProjectsUseCase]:
    """Yield a project sync use case bound to a Jira client open for this request."""
    pool = get_db_pool()
    config = get_sync_config()
    async with JiraClient.from_config(JiraApiConfig.from_env()) as client:
        yield SyncProjectsUseCase(
            project_api=JiraProjectAPI(client),
            project_repo=PostgresProjectRepository(pool),
            transaction_executor=PostgresTransactionExecutor(
                pool, timeout=config.transaction_timeout_seconds
            ),
            field_mapper=ProjectFieldMapper(),
            config=config,
        )


async def get_sync_issues_use_case() -> AsyncIterator[SyncIssuesUseCase]:
    """Yield an issue sync use case bound to a Jira client open for this request."""
    pool = get_db_pool()
    config = get_sync_config()
    jira_config = JiraApiConfig.from_env()
    async with JiraClient.from_config(jira_config) as client:
        yield SyncIssuesUseCase(
            issue_api=JiraIssueAPI.from_config(
                client, jira_config, since_inclusive=config.since_inclusive
            ),
            issue_repo=PostgresIssueRepository(pool),
            project_repo=PostgresProjectRepository(pool),
            transaction_executor=PostgresTransactionExecutor(
                pool, timeout=config.transaction_timeout_seconds
            ),
            field_mapper=IssueFieldMapper(),
            config=config,
        )
