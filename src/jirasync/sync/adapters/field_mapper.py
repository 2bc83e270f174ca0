"""Field mapper adapters for transforming between API, domain, and DB formats.

These adapters implement IIssueFieldMapper and IProjectFieldMapper. Every
validation failure surfaces as a RecordValidationError so the sync use
case can record it against the offending record and carry on.
"""

from datetime import datetime, timezone
from typing import Any

from ...exceptions import InvalidFormatError, MissingFieldError, RecordValidationError
from ..domain.entities import Issue, Project
from ..domain.ports import IIssueFieldMapper, IProjectFieldMapper
from ..domain.value_objects import (
    IssueId,
    IssueKey,
    IssuePriority,
    IssueType,
    ProjectId,
)

JIRA_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"


def adf_to_text(node: Any) -> str:
    """Flatten an Atlassian Document Format tree into plain text.

    Text nodes are concatenated in document order and every paragraph
    ends with a newline. The result is stripped of surrounding whitespace.
    Plain strings are returned stripped as-is.
    """
    if isinstance(node, str):
        return node.strip()
    parts: list[str] = []
    _collect_adf_text(node, parts)
    return "".join(parts).strip()


def _collect_adf_text(node: Any, parts: list[str]) -> None:
    if isinstance(node, dict):
        text = node.get("text")
        if isinstance(text, str):
            parts.append(text)
        content = node.get("content")
        if isinstance(content, list):
            for child in content:
                _collect_adf_text(child, parts)
            if node.get("type") == "paragraph":
                parts.append("\n")
    elif isinstance(node, list):
        for child in node:
            _collect_adf_text(child, parts)


def _require(mapping: dict[str, Any], key: str, path: str) -> Any:
    value = mapping.get(key)
    if value is None or value == "":
        raise MissingFieldError(path)
    return value


def _require_object(mapping: dict[str, Any], key: str, path: str) -> dict[str, Any]:
    value = _require(mapping, key, path)
    if not isinstance(value, dict):
        raise InvalidFormatError(value, field=path, expected="object")
    return value


class IssueFieldMapper(IIssueFieldMapper):
    """Maps Jira search API issues to Issue entities and DB records.

    This class handles:
    - Nested object flattening (fields.project, fields.issuetype, ...)
    - Description conversion from ADF to plain text
    - Timestamp parsing (Jira's ``+0000`` offsets and ISO 8601)
    - Category parsing via IssueType/IssuePriority.from_code
    """

    def map_to_entity(self, raw: dict[str, Any]) -> Issue:
        """Transform a raw search API issue to an Issue entity.

        Args:
            raw: One element of the search response's ``issues`` list

        Returns:
            Issue entity

        Raises:
            RecordValidationError: If a field is missing or invalid
        """
        if not isinstance(raw, dict):
            raise InvalidFormatError(raw, field="issue", expected="object")

        fields = _require_object(raw, "fields", "fields")
        project = _require_object(fields, "project", "fields.project")
        issue_type = _require_object(fields, "issuetype", "fields.issuetype")
        priority = _require_object(fields, "priority", "fields.priority")
        parent = fields.get("parent") or {}
        if not isinstance(parent, dict):
            raise InvalidFormatError(parent, field="fields.parent", expected="object")

        description = fields.get("description")
        summary = _require(fields, "summary", "fields.summary")
        if not isinstance(summary, str) or not summary.strip():
            raise InvalidFormatError(summary, field="fields.summary", expected="non-blank text")

        try:
            return Issue(
                id=IssueId.of(_require(raw, "id", "id")),
                project_id=ProjectId.of(_require(project, "id", "fields.project.id")),
                key=IssueKey.of(_require(raw, "key", "key")),
                summary=summary,
                description=adf_to_text(description) if description is not None else None,
                issue_type=IssueType.from_code(
                    _require(issue_type, "name", "fields.issuetype.name")
                ),
                priority=IssuePriority.from_code(
                    _require(priority, "name", "fields.priority.name")
                ),
                parent_id=IssueId.of(parent["id"]) if parent.get("id") else None,
                created_at=self._parse_timestamp(
                    _require(fields, "created", "fields.created"), "fields.created"
                ),
                updated_at=self._parse_timestamp(
                    _require(fields, "updated", "fields.updated"), "fields.updated"
                ),
            )
        except RecordValidationError:
            raise
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            raise RecordValidationError(str(e), field="issue", cause=e)

    def map_to_record(self, issue: Issue) -> tuple[Any, ...]:
        """Transform an Issue entity to a database record tuple.

        The tuple ordering matches the INSERT statement in PostgresIssueRepository:
        (id, project_id, key, summary, description, issue_type, priority,
         parent_id, created_at, updated_at)
        """
        return (
            issue.id.value,
            issue.project_id.value,
            issue.key.value,
            issue.summary,
            issue.description,
            issue.issue_type.code,
            issue.priority.code,
            issue.parent_id.value if issue.parent_id else None,
            issue.created_at,
            issue.updated_at,
        )

    @staticmethod
    def _parse_timestamp(value: Any, field: str = "timestamp") -> datetime:
        """Parse a Jira timestamp into an aware datetime.

        Jira returns e.g. ``2024-01-15T10:30:00.000+0000``; ISO 8601 forms
        with ``Z`` or ``+00:00`` are accepted too. Naive values are UTC.
        """
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str):
            try:
                parsed = datetime.strptime(value, JIRA_TIMESTAMP_FORMAT)
            except ValueError:
                try:
                    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
                except ValueError as e:
                    raise InvalidFormatError(
                        value, field=field, expected="ISO 8601 timestamp", cause=e
                    )
        else:
            raise InvalidFormatError(value, field=field, expected="ISO 8601 timestamp")

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed


class ProjectFieldMapper(IProjectFieldMapper):
    """Maps Jira project API responses to Project entities."""

    def map_to_entity(self, raw: dict[str, Any]) -> Project:
        if not isinstance(raw, dict):
            raise InvalidFormatError(raw, field="project", expected="object")
        return Project.of(
            _require(raw, "id", "id"),
            _require(raw, "key", "key"),
            _require(raw, "name", "name"),
        )

    def map_to_record(self, project: Project) -> tuple[Any, ...]:
        """(id, key, name), matching PostgresProjectRepository's INSERT."""
        return (project.id.value, project.key.value, project.name.value)
