"""Port interfaces for sync and query operations.

Ports define the contracts between the domain/use cases and the infrastructure.
These are abstract base classes that adapters must implement.

Following the Hexagonal Architecture (Ports and Adapters) pattern:
- Ports are interfaces defined in the domain layer
- Adapters implement these ports in the adapters layer
- Use cases depend only on ports, not concrete implementations

Command ports (repositories) write entities; query ports return
projections and never build entities.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from .entities import Issue, IssueBatch, Project
from .projections import IssueQueryDTO, Page, ProjectQueryDTO
from .value_objects import IssueId, PageNumber, PageSize, ProjectId, ProjectKey

T = TypeVar("T")


# ============================================
# External Fetch Ports
# ============================================

class IIssueAPI(ABC):
    """Port for pulling issues from the external source."""

    @abstractmethod
    def fetch_issues(
        self,
        project_keys: list[ProjectKey],
        since: datetime,
    ) -> AsyncIterator[IssueBatch]:
        """Stream issues updated since the cutoff, one page per batch.

        The stream is lazy and finite. A batch carries either raw records
        or an error. After a retryable error (rate limit, network, server)
        the next pull requests the same page again. After a fatal error
        (authentication) the stream ends. A malformed page is yielded as
        an error and the stream continues with the next page.

        Args:
            project_keys: Projects to pull issues for; empty yields nothing
            since: Only issues updated at or after this instant

        Yields:
            IssueBatch per page
        """
        ...


class IProjectAPI(ABC):
    """Port for pulling projects from the external source."""

    @abstractmethod
    async def fetch_projects(self) -> list[dict[str, Any]]:
        """Fetch all projects visible to the configured credentials.

        Returns:
            List of raw project dictionaries from the API

        Raises:
            JiraSyncError: On any fetch failure
        """
        ...


# ============================================
# Field Mapper Ports
# ============================================

class IIssueFieldMapper(ABC):
    """Port for transforming raw API issues into domain entities."""

    @abstractmethod
    def map_to_entity(self, raw: dict[str, Any]) -> Issue:
        """Transform a raw API response to an Issue entity.

        Args:
            raw: Raw issue dictionary from the API

        Returns:
            Issue entity

        Raises:
            RecordValidationError: If the record cannot be mapped
        """
        ...

    @abstractmethod
    def map_to_record(self, issue: Issue) -> tuple[Any, ...]:
        """Transform an Issue entity to a database record tuple."""
        ...


class IProjectFieldMapper(ABC):
    """Port for transforming raw API projects into domain entities."""

    @abstractmethod
    def map_to_entity(self, raw: dict[str, Any]) -> Project:
        """Transform a raw API response to a Project entity.

        Raises:
            RecordValidationError: If the record cannot be mapped
        """
        ...


# ============================================
# Command Repository Ports
# ============================================

class IIssueRepository(ABC):
    """Port for issue persistence.

    Implementations run on the connection of the active transaction
    scope and never begin or commit a transaction themselves.
    """

    @abstractmethod
    async def bulk_upsert(self, issues: list[Issue]) -> list[Issue]:
        """Insert or update issues keyed by id.

        Existing rows are overwritten on every mutable field unless the
        stored row is newer (greater updated_at). Idempotent.

        Args:
            issues: Non-empty list of Issue entities

        Returns:
            The issues that were written

        Raises:
            ValueError: If issues is empty
            PersistError: If the write fails
        """
        ...


class IProjectRepository(ABC):
    """Port for project persistence."""

    @abstractmethod
    async def find_all_project_keys(self) -> list[ProjectKey]:
        """Return every stored project key, ordered by key.

        Raises:
            QueryError: If the read fails
        """
        ...

    @abstractmethod
    async def find_by_id(self, project_id: ProjectId) -> Project | None:
        """Return the project with the given id, or None."""
        ...

    @abstractmethod
    async def create(self, project: Project) -> Project:
        """Insert a new project.

        Raises:
            PersistError: If the write fails (including duplicate ids)
        """
        ...

    @abstractmethod
    async def update(self, project: Project) -> Project:
        """Overwrite the key and name of an existing project.

        Raises:
            PersistError: If the write fails
        """
        ...

    @abstractmethod
    async def bulk_upsert(self, projects: list[Project]) -> list[Project]:
        """Insert or update projects keyed by id.

        Raises:
            ValueError: If projects is empty
            PersistError: If the write fails
        """
        ...


# ============================================
# Query Repository Ports
# ============================================

class IIssueQueryRepository(ABC):
    """Port for read-only issue queries."""

    @abstractmethod
    async def find_by_ids(self, ids: list[IssueId]) -> list[IssueQueryDTO]:
        """Return the issues with the given ids, ordered by id ascending.

        Unknown ids are silently absent from the result.

        Raises:
            QueryError: If the read fails
        """
        ...

    @abstractmethod
    async def list(
        self,
        page_number: PageNumber,
        page_size: PageSize,
    ) -> Page[IssueQueryDTO]:
        """Return one page of issues ordered by id ascending.

        Raises:
            QueryError: If the read fails
        """
        ...


class IProjectQueryRepository(ABC):
    """Port for read-only project queries."""

    @abstractmethod
    async def find_by_ids(self, ids: list[ProjectId]) -> list[ProjectQueryDTO]:
        """Return the projects with the given ids, ordered by id ascending."""
        ...

    @abstractmethod
    async def list(
        self,
        page_number: PageNumber,
        page_size: PageSize,
    ) -> Page[ProjectQueryDTO]:
        """Return one page of projects ordered by id ascending."""
        ...


# ============================================
# Transaction Port
# ============================================

class ITransactionExecutor(ABC):
    """Port for running a unit of work inside one database transaction."""

    @abstractmethod
    async def run_in_transaction(self, work: Callable[[], Awaitable[T]]) -> T:
        """Begin, await work(), then commit; roll back on any failure.

        Args:
            work: Zero-argument coroutine function performing the writes

        Returns:
            Whatever work returns

        Raises:
            TransactionError: If work or the commit fails, with the
                original exception chained as the cause
        """
        ...
