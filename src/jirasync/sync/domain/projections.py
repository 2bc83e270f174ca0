"""Read-side projections.

Query repositories return these flat, immutable views straight from SQL
rows. They are never converted back into entities.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class IssueQueryDTO:
    """Flat view of a stored issue."""

    id: int
    project_id: int
    key: str
    summary: str
    issue_type: str
    priority: str
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    parent_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "key": self.key,
            "summary": self.summary,
            "description": self.description,
            "issue_type": self.issue_type,
            "priority": self.priority,
            "parent_id": self.parent_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class ProjectQueryDTO:
    """Flat view of a stored project."""

    id: int
    key: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "key": self.key, "name": self.name}


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of query results.

    Invariants checked at construction:
        - len(items) <= page_size
        - total_count >= len(items)
    """

    items: list[T] = field(default_factory=list)
    total_count: int = 0
    page_number: int = 1
    page_size: int = 10

    def __post_init__(self):
        if self.page_number < 1:
            raise ValueError(f"page_number must be at least 1, got {self.page_number}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {self.page_size}")
        if self.total_count < 0:
            raise ValueError(f"total_count must not be negative, got {self.total_count}")
        if len(self.items) > self.page_size:
            raise ValueError(
                f"Page holds {len(self.items)} items but page_size is {self.page_size}"
            )
        if self.total_count < len(self.items):
            raise ValueError(
                f"total_count {self.total_count} is less than item count {len(self.items)}"
            )

    @property
    def total_pages(self) -> int:
        if self.total_count == 0:
            return 0
        return -(-self.total_count // self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [
                item.to_dict() if hasattr(item, "to_dict") else item
                for item in self.items
            ],
            "total_count": self.total_count,
            "page_number": self.page_number,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
        }
