"""Operation-level errors raised by use cases.

Each error names the operation that failed and the phase it failed in,
and chains the source-level JiraSyncError that caused it. Source-level
errors never leave a use case unwrapped.

Hierarchy:
    ApplicationError
    ├── IssueSyncError
    ├── ProjectSyncError
    ├── ListQueryError
    │   └── PaginationValidationError
    ├── FindByIdsQueryError
    ├── ProjectCreateError
    └── ProjectUpdateError
        └── ProjectNotFoundError
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from ..domain.entities import SyncReport


class Phase(str, Enum):
    """Step of an operation in which a failure occurred."""

    VALIDATION = "validation"
    KEY_RESOLUTION = "key_resolution"
    FETCH = "fetch"
    PERSIST = "persist"


class ApplicationError(Exception):
    """Base class for operation-level failures.

    Attributes:
        message: Human-readable error description
        operation: Name of the failed operation (e.g., "issue_sync")
        phase: Phase of the operation that failed
        cause: Underlying source-level error, also set as __cause__
    """

    operation: str = "operation"

    def __init__(
        self,
        message: str,
        phase: Phase,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.phase = phase
        self.cause = cause
        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        text = f"[{self.operation}:{self.phase.value}] {self.message}"
        if self.cause:
            text = f"{text}: {self.cause}"
        return text

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses and logging."""
        return {
            "error_type": self.__class__.__name__,
            "operation": self.operation,
            "phase": self.phase.value,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "cause_type": type(self.cause).__name__ if self.cause else None,
        }


class IssueSyncError(ApplicationError):
    """Raised when an issue sync run cannot complete.

    Attributes:
        report: What had been persisted before the failure
    """

    operation = "issue_sync"

    def __init__(
        self,
        message: str,
        phase: Phase,
        cause: Optional[BaseException] = None,
        report: Optional["SyncReport"] = None,
    ):
        super().__init__(message, phase, cause)
        self.report = report

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["report"] = self.report.to_dict() if self.report else None
        return data


class ProjectSyncError(ApplicationError):
    """Raised when a project sync run cannot complete."""

    operation = "project_sync"


class ListQueryError(ApplicationError):
    """Raised when listing a page of records fails."""

    operation = "list_query"


class PaginationValidationError(ListQueryError):
    """Raised before any I/O when page number or page size is invalid."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, Phase.VALIDATION, cause)


class FindByIdsQueryError(ApplicationError):
    """Raised when looking records up by id fails."""

    operation = "find_by_ids_query"


class ProjectCreateError(ApplicationError):
    """Raised when creating a project fails."""

    operation = "project_create"


class ProjectUpdateError(ApplicationError):
    """Raised when updating a project fails."""

    operation = "project_update"


class ProjectNotFoundError(ProjectUpdateError):
    """Raised when the project to update does not exist."""

    def __init__(self, project_id: Any):
        super().__init__(f"Project {project_id} not found", Phase.FETCH)
        self.project_id = project_id
