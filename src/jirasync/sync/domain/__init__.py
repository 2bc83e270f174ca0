"""Domain layer - Value objects, entities, projections and port interfaces.

This layer contains:
- Value objects: Validated identifiers, keys, categories and pagination
- Entities: Immutable Issue and Project business objects
- Projections: Flat read-side views returned by query ports
- Ports: Abstract interfaces defining contracts for adapters

No infrastructure dependencies allowed in this layer.
"""

from .entities import (
    Issue,
    IssueBatch,
    Project,
    SyncFailure,
    SyncReport,
)
from .ports import (
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
from .projections import IssueQueryDTO, Page, ProjectQueryDTO
from .value_objects import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    IssueId,
    IssueKey,
    IssuePriority,
    IssueType,
    PageNumber,
    PageSize,
    ProjectId,
    ProjectKey,
    ProjectName,
)

__all__ = [
    # Value objects
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "IssueId",
    "IssueKey",
    "IssuePriority",
    "IssueType",
    "PageNumber",
    "PageSize",
    "ProjectId",
    "ProjectKey",
    "ProjectName",
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
    # Fetch ports
    "IIssueAPI",
    "IProjectAPI",
    "IIssueFieldMapper",
    "IProjectFieldMapper",
    # Command ports
    "IIssueRepository",
    "IProjectRepository",
    "ITransactionExecutor",
    # Query ports
    "IIssueQueryRepository",
    "IProjectQueryRepository",
]
