"""Adapters layer - Infrastructure implementations of the domain ports.

- JiraIssueAPI / JiraProjectAPI: Jira Cloud REST implementations of the fetch ports
- IssueFieldMapper / ProjectFieldMapper: API record to entity mapping
- PostgresIssueRepository / PostgresProjectRepository: command repositories
- PostgresIssueQueryRepository / PostgresProjectQueryRepository: query repositories
- PostgresTransactionExecutor: asyncpg implementation of ITransactionExecutor
"""

from .field_mapper import IssueFieldMapper, ProjectFieldMapper, adf_to_text
from .jira_api_adapter import JiraIssueAPI, JiraProjectAPI, build_issue_jql
from .postgres_issue_repo import PostgresIssueRepository
from .postgres_project_repo import PostgresProjectRepository
from .postgres_query_repo import (
    PostgresIssueQueryRepository,
    PostgresProjectQueryRepository,
)
from .transaction_executor import PostgresTransactionExecutor

__all__ = [
    # Fetch adapters
    "JiraIssueAPI",
    "JiraProjectAPI",
    "build_issue_jql",
    # Mappers
    "IssueFieldMapper",
    "ProjectFieldMapper",
    "adf_to_text",
    # Command repositories
    "PostgresIssueRepository",
    "PostgresProjectRepository",
    "PostgresTransactionExecutor",
    # Query repositories
    "PostgresIssueQueryRepository",
    "PostgresProjectQueryRepository",
]
