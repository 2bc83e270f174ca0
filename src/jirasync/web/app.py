"""FastAPI application for the Jira sync query and command API.

Run with:
    uvicorn src.jirasync.web.app:app --port 8000
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..api.database import check_database_health
from ..api.error_sanitizer import sanitize_error_payload
from ..config import configure_logging
from ..exceptions import ConfigurationError, JiraSyncError
from ..sync.use_cases.errors import (
    ApplicationError,
    IssueSyncError,
    Phase,
    ProjectNotFoundError,
    ProjectSyncError,
)
from .dependencies import close_db_pool, get_db_pool_or_none, init_db_pool
from .router import issues_router, projects_router, sync_router
from .schemas import HealthResponse

logger = logging.getLogger(__name__)


def status_for_error(error: ApplicationError) -> int:
    """HTTP status for an operation-level failure.

    - 400: bad input, rejected before any I/O
    - 404: the project to update does not exist
    - 502: Jira could not be read during a sync
    - 500: anything else, including persist failures
    """
    if error.phase == Phase.VALIDATION:
        return 400
    if isinstance(error, ProjectNotFoundError):
        return 404
    if isinstance(error, (IssueSyncError, ProjectSyncError)) and error.phase in (
        Phase.FETCH,
        Phase.KEY_RESOLUTION,
    ):
        return 502
    return 500


async def application_error_handler(request: Request, exc: ApplicationError):
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=status_code, content=sanitize_error_payload(exc.to_dict()))


async def source_error_handler(request: Request, exc: JiraSyncError):
    # Only reached when wiring fails, e.g. missing Jira credentials
    status_code = 503 if isinstance(exc, ConfigurationError) else 500
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content=sanitize_error_payload(exc.to_dict()))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    - Startup: load .env, configure logging, open the database pool
    - Shutdown: close the database pool
    """
    load_dotenv()
    configure_logging()
    logger.info("Starting Jira sync API...")

    try:
        await init_db_pool()
        logger.info("Database pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise

    yield

    logger.info("Shutting down Jira sync API...")
    await close_db_pool()
    logger.info("Database pool closed")


def create_app() -> FastAPI:
    """Build the FastAPI application with routers and error handlers."""
    app = FastAPI(
        title="Jira Sync API",
        description="""
        Paginated read access to synced Jira issues and projects, manual
        project edits, and on-demand sync runs.
        """,
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(ApplicationError, application_error_handler)
    app.add_exception_handler(JiraSyncError, source_error_handler)

    app.include_router(issues_router)
    app.include_router(projects_router)
    app.include_router(sync_router)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Health check including database connectivity."""
        database = await check_database_health(get_db_pool_or_none())
        status = "healthy" if database.get("healthy") else "degraded"
        return HealthResponse(status=status, database=database)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.jirasync.web.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
    )
