"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class IssueDTO(BaseModel):
    """Issue projection as returned by the query API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    key: str
    summary: str
    description: Optional[str] = None
    issue_type: str
    priority: str
    parent_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ProjectDTO(BaseModel):
    """Project projection as returned by the query API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    key: str
    name: str


class IssuePageResponse(BaseModel):
    """One page of issues."""

    items: list[IssueDTO]
    total_count: int
    page_number: int
    page_size: int
    total_pages: int
    has_next: bool


class ProjectPageResponse(BaseModel):
    """One page of projects."""

    items: list[ProjectDTO]
    total_count: int
    page_number: int
    page_size: int
    total_pages: int
    has_next: bool


class ProjectCreateRequest(BaseModel):
    """Request body for creating a project.

    Values are validated by the use case, so invalid keys or names come
    back as 400 with the operation and phase rather than as a 422.
    """

    id: str
    key: str
    name: str


class ProjectUpdateRequest(BaseModel):
    """Request body for renaming a project."""

    key: str
    name: str


class SyncIssuesRequest(BaseModel):
    """Request body for an issue sync run."""

    days: int = Field(default=1, ge=0, le=3650, description="Lookback window in days")


class SyncFailureDTO(BaseModel):
    batch_index: int
    record_id: Optional[str] = None
    error_type: Optional[str] = None
    cause: str


class SyncReportResponse(BaseModel):
    """Outcome of a sync run."""

    success: bool
    persisted: int
    batches_committed: int
    records_fetched: int
    failed: int
    failures: list[SyncFailureDTO] = Field(default_factory=list)
    cancelled: bool = False
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None


class ErrorResponse(BaseModel):
    """Body returned for operation-level failures."""

    error_type: str
    operation: str
    phase: str
    message: str
    cause: Optional[str] = None
    cause_type: Optional[str] = None
    report: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: str
    database: dict[str, Any]
