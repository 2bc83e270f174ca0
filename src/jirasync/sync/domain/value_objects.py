"""Value objects for the Jira domain.

Identifiers, keys, names and category enums are validated once at
construction, so an entity built from them is always well formed.
Pagination parameters live here too because both the query use cases
and the query repositories speak in terms of them.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ...exceptions import (
    InvalidFormatError,
    InvalidIdentifierError,
    PageNumberError,
    PageSizeError,
    UnknownCategoryError,
)

ISSUE_KEY_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*-\d+$")
PROJECT_KEY_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*$")
MAX_PROJECT_NAME_LENGTH = 255
# Identifiers are stored as BIGINT
MAX_IDENTIFIER = 2**63 - 1

MIN_PAGE_NUMBER = 1
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


def _parse_positive_int(raw: Any, field: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(raw, bool):
        raise InvalidIdentifierError(raw, field=field)
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and raw.strip().isascii() and raw.strip().isdigit():
        value = int(raw.strip())
    else:
        raise InvalidIdentifierError(raw, field=field)
    if not 0 < value <= MAX_IDENTIFIER:
        raise InvalidIdentifierError(raw, field=field)
    return value


# ============================================
# Identifiers
# ============================================

@dataclass(frozen=True, order=True)
class IssueId:
    """Numeric Jira issue identifier."""

    value: int

    def __post_init__(self):
        _parse_positive_int(self.value, "issue_id")

    @classmethod
    def of(cls, raw: Any) -> "IssueId":
        """Build from an int or the numeric string form the API returns.

        Raises:
            InvalidIdentifierError: If raw is not a positive integer
        """
        return cls(_parse_positive_int(raw, "issue_id"))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, order=True)
class ProjectId:
    """Numeric Jira project identifier."""

    value: int

    def __post_init__(self):
        _parse_positive_int(self.value, "project_id")

    @classmethod
    def of(cls, raw: Any) -> "ProjectId":
        return cls(_parse_positive_int(raw, "project_id"))

    def __str__(self) -> str:
        return str(self.value)


# ============================================
# Keys and Names
# ============================================

@dataclass(frozen=True)
class IssueKey:
    """Human-readable issue key such as ``PROJ-123``."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not ISSUE_KEY_PATTERN.match(self.value):
            raise InvalidFormatError(
                self.value, field="issue_key", expected=ISSUE_KEY_PATTERN.pattern
            )

    @classmethod
    def of(cls, raw: Any) -> "IssueKey":
        return cls(raw)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProjectKey:
    """Project key such as ``PROJ``."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not PROJECT_KEY_PATTERN.match(self.value):
            raise InvalidFormatError(
                self.value, field="project_key", expected=PROJECT_KEY_PATTERN.pattern
            )

    @classmethod
    def of(cls, raw: Any) -> "ProjectKey":
        return cls(raw)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProjectName:
    """Display name of a project, 1 to 255 characters."""

    value: str

    def __post_init__(self):
        if (
            not isinstance(self.value, str)
            or not self.value.strip()
            or len(self.value) > MAX_PROJECT_NAME_LENGTH
        ):
            raise InvalidFormatError(
                self.value,
                field="project_name",
                expected=f"1 to {MAX_PROJECT_NAME_LENGTH} characters",
            )

    @classmethod
    def of(cls, raw: Any) -> "ProjectName":
        return cls(raw)

    def __str__(self) -> str:
        return self.value


# ============================================
# Categories
# ============================================

class IssueType(str, Enum):
    """Issue type. Values are the canonical codes stored in the database."""

    EPIC = "Epic"
    STORY = "Story"
    TASK = "Task"
    SUBTASK = "Subtask"
    BUG = "Bug"

    @classmethod
    def from_code(cls, raw: Any) -> "IssueType":
        """Parse a type name case-insensitively.

        Jira reports sub-tasks as "Sub-task"; that alias is accepted too.

        Raises:
            UnknownCategoryError: If raw names no known issue type
        """
        if isinstance(raw, str):
            normalized = raw.strip().lower()
            if normalized == "sub-task":
                return cls.SUBTASK
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        raise UnknownCategoryError(raw, category="issue_type")

    @property
    def code(self) -> str:
        return self.value


class IssuePriority(str, Enum):
    """Issue priority, ordered from LOWEST to HIGHEST."""

    LOWEST = "Lowest"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    HIGHEST = "Highest"

    @classmethod
    def from_code(cls, raw: Any) -> "IssuePriority":
        """Parse a priority name case-insensitively.

        Raises:
            UnknownCategoryError: If raw names no known priority
        """
        if isinstance(raw, str):
            normalized = raw.strip().lower()
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        raise UnknownCategoryError(raw, category="issue_priority")

    @property
    def code(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return list(IssuePriority).index(self)

    def __lt__(self, other):
        if not isinstance(other, IssuePriority):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, IssuePriority):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, IssuePriority):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, IssuePriority):
            return NotImplemented
        return self.rank >= other.rank


# ============================================
# Pagination
# ============================================

@dataclass(frozen=True)
class PageNumber:
    """1-based page number."""

    value: int = MIN_PAGE_NUMBER

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise PageNumberError(self.value, minimum=MIN_PAGE_NUMBER)
        if self.value < MIN_PAGE_NUMBER:
            raise PageNumberError(self.value, minimum=MIN_PAGE_NUMBER)

    @classmethod
    def of(cls, value: int | None) -> "PageNumber":
        """Build a page number, defaulting to the first page when value is None."""
        if value is None:
            return cls()
        return cls(value)


@dataclass(frozen=True)
class PageSize:
    """Number of items per page, between 1 and MAX_PAGE_SIZE."""

    value: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise PageSizeError(self.value, minimum=MIN_PAGE_SIZE, maximum=MAX_PAGE_SIZE)
        if not MIN_PAGE_SIZE <= self.value <= MAX_PAGE_SIZE:
            raise PageSizeError(self.value, minimum=MIN_PAGE_SIZE, maximum=MAX_PAGE_SIZE)

    @classmethod
    def of(cls, value: int | None) -> "PageSize":
        """Build a page size, defaulting to DEFAULT_PAGE_SIZE when value is None."""
        if value is None:
            return cls()
        return cls(value)

    def offset_for(self, page_number: PageNumber) -> int:
        """Row offset of the first item on the given page."""
        return (page_number.value - 1) * self.value
