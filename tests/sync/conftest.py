"""Shared fixtures for sync tests."""

from typing import Any

import pytest


def _raw_issue(
    issue_id: str = "10001",
    key: str = "PROJ-1",
    project_id: str = "10000",
    summary: str = "Login page crashes",
    issue_type: str = "Bug",
    priority: str = "High",
    updated: str = "2024-01-15T10:30:00.000+0000",
    **field_overrides: Any,
) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "project": {"id": project_id, "key": key.rsplit("-", 1)[0]},
        "summary": summary,
        "description": None,
        "issuetype": {"name": issue_type},
        "priority": {"name": priority},
        "created": "2024-01-10T08:00:00.000+0000",
        "updated": updated,
    }
    fields.update(field_overrides)
    return {"id": issue_id, "key": key, "fields": fields}


@pytest.fixture
def raw_issue():
    """Factory for raw search API issues.

    Keyword arguments not in the signature override entries of ``fields``.
    """
    return _raw_issue
