"""Domain entities for sync operations.

These are pure data structures with no infrastructure dependencies.
They represent the core business objects used in sync operations.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from .value_objects import (
    IssueId,
    IssueKey,
    IssuePriority,
    IssueType,
    ProjectId,
    ProjectKey,
    ProjectName,
)


# ============================================
# Issue Entities
# ============================================

@dataclass(frozen=True)
class Issue:
    """Domain entity representing a Jira issue.

    All fields match the issues table in db/schema.sql. Instances are
    immutable; use revise() to derive the next version of an issue.
    """

    # Identity
    id: IssueId
    project_id: ProjectId
    key: IssueKey

    # Content
    summary: str
    issue_type: IssueType
    priority: IssuePriority
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    parent_id: IssueId | None = None

    def __post_init__(self):
        if not isinstance(self.summary, str) or not self.summary.strip():
            raise ValueError("Issue summary must not be blank")
        if self.created_at.tzinfo is None or self.updated_at.tzinfo is None:
            raise ValueError("Issue timestamps must be timezone aware")

    def revise(self, **changes: Any) -> "Issue":
        """Return the next version of this issue with the given fields changed.

        Raises:
            ValueError: If the change touches id or key, or moves updated_at
                backwards
        """
        for immutable in ("id", "key"):
            if immutable in changes and changes[immutable] != getattr(self, immutable):
                raise ValueError(f"Issue {immutable} cannot be changed")
        updated_at = changes.get("updated_at", self.updated_at)
        if updated_at < self.updated_at:
            raise ValueError(
                f"updated_at must not go backwards "
                f"({updated_at.isoformat()} < {self.updated_at.isoformat()})"
            )
        return replace(self, **changes)


# ============================================
# Project Entities
# ============================================

@dataclass(frozen=True)
class Project:
    """Domain entity representing a Jira project."""

    id: ProjectId
    key: ProjectKey
    name: ProjectName

    @classmethod
    def of(cls, id: Any, key: Any, name: Any) -> "Project":
        """Build a project from raw values, validating each one.

        Raises:
            RecordValidationError: If any value is invalid
        """
        return cls(ProjectId.of(id), ProjectKey.of(key), ProjectName.of(name))

    def rename(self, key: ProjectKey, name: ProjectName) -> "Project":
        """Return a copy with a new key and name."""
        return replace(self, key=key, name=name)


# ============================================
# Fetch Batches
# ============================================

@dataclass
class IssueBatch:
    """One pull from the fetch stream.

    Exactly one of ``records`` (non-empty, upstream order) or ``error``
    is set.
    """

    records: list[dict[str, Any]] = field(default_factory=list)
    error: Exception | None = None
    start_at: int = 0

    def __post_init__(self):
        if self.error is None and not self.records:
            raise ValueError("A successful batch must carry at least one record")
        if self.error is not None and self.records:
            raise ValueError("A failed batch must not carry records")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: Exception, start_at: int = 0) -> "IssueBatch":
        return cls(records=[], error=error, start_at=start_at)


# ============================================
# Sync Reporting
# ============================================

@dataclass
class SyncFailure:
    """A non-fatal failure recorded while syncing.

    Either a whole batch (record_id is None) or a single record.
    """

    batch_index: int
    cause: str
    record_id: str | None = None
    error_type: str | None = None

    @classmethod
    def from_exception(
        cls,
        batch_index: int,
        error: BaseException,
        record_id: str | None = None,
    ) -> "SyncFailure":
        return cls(
            batch_index=batch_index,
            cause=str(error),
            record_id=record_id,
            error_type=type(error).__name__,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_index": self.batch_index,
            "record_id": self.record_id,
            "error_type": self.error_type,
            "cause": self.cause,
        }


@dataclass
class SyncReport:
    """Result of a sync run.

    Contains statistics about the sync operation and any non-fatal
    failures encountered along the way.
    """

    persisted: int = 0
    batches_committed: int = 0
    records_fetched: int = 0
    failures: list[SyncFailure] = field(default_factory=list)
    cancelled: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None

    @property
    def success(self) -> bool:
        """True when every fetched record was persisted and nothing failed."""
        return not self.failures and not self.cancelled

    @property
    def duration_seconds(self) -> float | None:
        """Calculate sync duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def record_failure(self, failure: SyncFailure) -> None:
        self.failures.append(failure)

    def complete(self) -> "SyncReport":
        self.completed_at = datetime.now(timezone.utc)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses and logging."""
        return {
            "success": self.success,
            "persisted": self.persisted,
            "batches_committed": self.batches_committed,
            "records_fetched": self.records_fetched,
            "failed": len(self.failures),
            "failures": [f.to_dict() for f in self.failures],
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }
