"""REST surface for the Jira sync pipeline.

Routers:
    issues_router: Paginated and by-id issue queries
    projects_router: Project queries and manual create/update
    sync_router: On-demand project and issue sync runs
"""

from .app import create_app, status_for_error
from .router import issues_router, projects_router, sync_router

__all__ = [
    "create_app",
    "status_for_error",
    "issues_router",
    "projects_router",
    "sync_router",
]
