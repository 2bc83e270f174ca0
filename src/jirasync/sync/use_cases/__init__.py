"""Use cases layer - Business logic orchestration.

Command side:
- SyncIssuesUseCase / SyncProjectsUseCase: fetch from Jira, map, persist
- CreateProjectUseCase / UpdateProjectUseCase: manual project edits

Query side:
- FindIssuesByIdsQueryUseCase / ListIssuesQueryUseCase
- FindProjectsByIdsQueryUseCase / ListProjectsQueryUseCase

Use cases depend only on ports, not concrete implementations, and wrap
every source-level failure in an operation-level error from ``errors``.
"""

from .errors import (
    ApplicationError,
    FindByIdsQueryError,
    IssueSyncError,
    ListQueryError,
    PaginationValidationError,
    Phase,
    ProjectCreateError,
    ProjectNotFoundError,
    ProjectSyncError,
    ProjectUpdateError,
)
from .issue_queries import FindIssuesByIdsQueryUseCase, ListIssuesQueryUseCase
from .manage_projects import (
    CreateProjectInput,
    CreateProjectUseCase,
    UpdateProjectInput,
    UpdateProjectUseCase,
)
from .project_queries import FindProjectsByIdsQueryUseCase, ListProjectsQueryUseCase
from .sync_issues import SyncIssuesUseCase
from .sync_projects import SyncProjectsUseCase

__all__ = [
    # Sync
    "SyncIssuesUseCase",
    "SyncProjectsUseCase",
    # Project commands
    "CreateProjectInput",
    "CreateProjectUseCase",
    "UpdateProjectInput",
    "UpdateProjectUseCase",
    # Queries
    "FindIssuesByIdsQueryUseCase",
    "ListIssuesQueryUseCase",
    "FindProjectsByIdsQueryUseCase",
    "ListProjectsQueryUseCase",
    # Errors
    "ApplicationError",
    "FindByIdsQueryError",
    "IssueSyncError",
    "ListQueryError",
    "PaginationValidationError",
    "Phase",
    "ProjectCreateError",
    "ProjectNotFoundError",
    "ProjectSyncError",
    "ProjectUpdateError",
]
