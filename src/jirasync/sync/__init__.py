"""Sync module - Clean Architecture implementation of the Jira sync pipeline.

Issues and projects are pulled from Jira Cloud and persisted to
PostgreSQL on the command side; a separate query side serves paginated
projections of the same tables.

Architecture:
    domain/     - Value objects, entities, projections and port interfaces
    use_cases/  - Business logic orchestration and operation-level errors
    adapters/   - Infrastructure implementations (PostgreSQL, Jira API)
"""

from .domain.entities import Issue, IssueBatch, Project, SyncFailure, SyncReport
from .domain.ports import (
    IIssueAPI,
    IIssueFieldMapper,
    IIssueQueryRepository,
    IIssueRepository,
    IProjectAPI,
    IProjectFieldMapper,
    IProjectQueryRepository,
    IProjectRepository,
    ITransactionExecutor,
)
from .domain.projections import IssueQueryDTO, Page, ProjectQueryDTO

__all__ = [
    # Entities
    "Issue",
    "IssueBatch",
    "Project",
    "SyncFailure",
    "SyncReport",
    # Projections
    "IssueQueryDTO",
    "Page",
    "ProjectQueryDTO",
    # Ports
    "IIssueAPI",
    "IIssueFieldMapper",
    "IIssueQueryRepository",
    "IIssueRepository",
    "IProjectAPI",
    "IProjectFieldMapper",
    "IProjectQueryRepository",
    "IProjectRepository",
    "ITransactionExecutor",
]
