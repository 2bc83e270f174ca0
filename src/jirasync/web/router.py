"""FastAPI routers for the query, project and sync endpoints.

Use cases raise operation-level errors; the exception handlers in
``app`` turn them into HTTP responses, so the handlers here stay thin.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..api.error_sanitizer import sanitize_report_payload
from ..sync.domain.entities import Project
from ..sync.use_cases import (
    CreateProjectInput,
    CreateProjectUseCase,
    FindIssuesByIdsQueryUseCase,
    FindProjectsByIdsQueryUseCase,
    ListIssuesQueryUseCase,
    ListProjectsQueryUseCase,
    SyncIssuesUseCase,
    SyncProjectsUseCase,
    UpdateProjectInput,
    UpdateProjectUseCase,
)
from .dependencies import (
    get_create_project_use_case,
    get_find_issues_use_case,
    get_find_projects_use_case,
    get_list_issues_use_case,
    get_list_projects_use_case,
    get_sync_issues_use_case,
    get_sync_projects_use_case,
    get_update_project_use_case,
)
from .schemas import (
    IssueDTO,
    IssuePageResponse,
    ProjectCreateRequest,
    ProjectDTO,
    ProjectPageResponse,
    ProjectUpdateRequest,
    SyncIssuesRequest,
    SyncReportResponse,
)

logger = logging.getLogger(__name__)

issues_router = APIRouter(prefix="/api/issues", tags=["Issues"])
projects_router = APIRouter(prefix="/api/projects", tags=["Projects"])
sync_router = APIRouter(prefix="/api/sync", tags=["Sync"])


def _project_dto(project: Project) -> ProjectDTO:
    return ProjectDTO(id=project.id.value, key=project.key.value, name=project.name.value)


# ========== Issues ==========


@issues_router.get("", response_model=IssuePageResponse)
async def list_issues(
    page_number: Optional[int] = Query(None, description="1-based page number (default 1)"),
    page_size: Optional[int] = Query(None, description="Items per page, 1-100 (default 10)"),
    use_case: ListIssuesQueryUseCase = Depends(get_list_issues_use_case),
):
    """List issues ordered by id."""
    page = await use_case.execute(page_number, page_size)
    return IssuePageResponse(**page.to_dict())


@issues_router.get("/by-ids", response_model=list[IssueDTO])
async def find_issues_by_ids(
    ids: list[str] = Query(default_factory=list, description="Issue ids, repeatable"),
    use_case: FindIssuesByIdsQueryUseCase = Depends(get_find_issues_use_case),
):
    """Find issues by id. Unknown ids are omitted."""
    return [IssueDTO.model_validate(dto) for dto in await use_case.execute(ids)]


# ========== Projects ==========


@projects_router.get("", response_model=ProjectPageResponse)
async def list_projects(
    page_number: Optional[int] = Query(None),
    page_size: Optional[int] = Query(None),
    use_case: ListProjectsQueryUseCase = Depends(get_list_projects_use_case),
):
    """List projects ordered by id."""
    page = await use_case.execute(page_number, page_size)
    return ProjectPageResponse(**page.to_dict())


@projects_router.get("/by-ids", response_model=list[ProjectDTO])
async def find_projects_by_ids(
    ids: list[str] = Query(default_factory=list),
    use_case: FindProjectsByIdsQueryUseCase = Depends(get_find_projects_use_case),
):
    """Find projects by id. Unknown ids are omitted."""
    return [ProjectDTO.model_validate(dto) for dto in await use_case.execute(ids)]


@projects_router.post("", response_model=ProjectDTO, status_code=201)
async def create_project(
    request: ProjectCreateRequest,
    use_case: CreateProjectUseCase = Depends(get_create_project_use_case),
):
    """Create a project."""
    project = await use_case.execute(
        CreateProjectInput(id=request.id, key=request.key, name=request.name)
    )
    return _project_dto(project)


@projects_router.put("/{project_id}", response_model=ProjectDTO)
async def update_project(
    project_id: str,
    request: ProjectUpdateRequest,
    use_case: UpdateProjectUseCase = Depends(get_update_project_use_case),
):
    """Change a project's key and name."""
    project = await use_case.execute(
        UpdateProjectInput(id=project_id, key=request.key, name=request.name)
    )
    return _project_dto(project)


# ========== Sync ==========


@sync_router.post("/projects", response_model=SyncReportResponse)
async def sync_projects(
    use_case: SyncProjectsUseCase = Depends(get_sync_projects_use_case),
):
    """Pull all projects from Jira and upsert them."""
    report = await use_case.execute()
    return SyncReportResponse(**sanitize_report_payload(report.to_dict()))


@sync_router.post("/issues", response_model=SyncReportResponse)
async def sync_issues(
    request: SyncIssuesRequest,
    use_case: SyncIssuesUseCase = Depends(get_sync_issues_use_case),
):
    """Pull issues updated in the last ``days`` days and upsert them."""
    since = datetime.now(timezone.utc) - timedelta(days=request.days)
    logger.info(f"Issue sync requested for the last {request.days} days")
    report = await use_case.execute(since)
    return SyncReportResponse(**sanitize_report_payload(report.to_dict()))
