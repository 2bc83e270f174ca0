"""Tests for sync domain value objects."""

import pytest

from src.jirasync.exceptions import (
    InvalidFormatError,
    InvalidIdentifierError,
    PageNumberError,
    PageSizeError,
    RecordValidationError,
    UnknownCategoryError,
)
from src.jirasync.sync.domain.value_objects import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    IssueId,
    IssueKey,
    IssuePriority,
    IssueType,
    PageNumber,
    PageSize,
    ProjectId,
    ProjectKey,
    ProjectName,
)


class TestIdentifiers:
    """Tests for IssueId and ProjectId."""

    def test_from_int(self):
        assert IssueId.of(10001).value == 10001
        assert ProjectId.of(1).value == 1

    def test_from_numeric_string(self):
        """The API returns ids as strings."""
        assert IssueId.of("10001") == IssueId(10001)
        assert ProjectId.of(" 42 ") == ProjectId(42)

    @pytest.mark.parametrize("raw", [0, -1, "0", "-5", "abc", "", None, 1.5, True])
    def test_rejects_invalid(self, raw):
        with pytest.raises(InvalidIdentifierError):
            IssueId.of(raw)

    @pytest.mark.parametrize("raw", ["\u00b2", "\u0663", str(2**63), 2**63])
    def test_rejects_non_ascii_digits_and_bigint_overflow(self, raw):
        with pytest.raises(InvalidIdentifierError):
            IssueId.of(raw)

    def test_bigint_maximum_accepted(self):
        assert ProjectId.of(str(2**63 - 1)).value == 2**63 - 1

    def test_direct_construction_validates(self):
        with pytest.raises(InvalidIdentifierError):
            ProjectId(0)

    def test_ordering(self):
        assert sorted([IssueId(3), IssueId(1), IssueId(2)]) == [IssueId(1), IssueId(2), IssueId(3)]

    def test_invalid_identifier_is_record_validation_error(self):
        with pytest.raises(RecordValidationError):
            IssueId.of("x")


class TestKeys:
    """Tests for IssueKey, ProjectKey and ProjectName."""

    @pytest.mark.parametrize("raw", ["PROJ-1", "AB-12345", "A1_B-7"])
    def test_valid_issue_keys(self, raw):
        assert IssueKey.of(raw).value == raw

    @pytest.mark.parametrize("raw", ["proj-1", "PROJ", "PROJ-", "-1", "1PROJ-1", "PROJ-1a", None])
    def test_invalid_issue_keys(self, raw):
        with pytest.raises(InvalidFormatError):
            IssueKey.of(raw)

    @pytest.mark.parametrize("raw", ["P", "PROJ", "AB1", "A_B"])
    def test_valid_project_keys(self, raw):
        assert str(ProjectKey.of(raw)) == raw

    @pytest.mark.parametrize("raw", ["", "proj", "1AB", "AB-1", "A B"])
    def test_invalid_project_keys(self, raw):
        with pytest.raises(InvalidFormatError):
            ProjectKey.of(raw)

    def test_project_name_bounds(self):
        assert ProjectName.of("x").value == "x"
        assert len(ProjectName.of("n" * 255).value) == 255

        with pytest.raises(InvalidFormatError):
            ProjectName.of("n" * 256)
        with pytest.raises(InvalidFormatError):
            ProjectName.of("   ")
        with pytest.raises(InvalidFormatError):
            ProjectName.of("")


class TestIssueType:
    """Tests for IssueType parsing."""

    def test_round_trip(self):
        for member in IssueType:
            assert IssueType.from_code(member.code) is member

    def test_case_insensitive(self):
        assert IssueType.from_code("story") is IssueType.STORY
        assert IssueType.from_code("  BUG ") is IssueType.BUG

    def test_sub_task_alias(self):
        assert IssueType.from_code("Sub-task") is IssueType.SUBTASK
        assert IssueType.from_code("subtask") is IssueType.SUBTASK

    @pytest.mark.parametrize("raw", ["Incident", "", None, 3])
    def test_unknown(self, raw):
        with pytest.raises(UnknownCategoryError):
            IssueType.from_code(raw)


class TestIssuePriority:
    """Tests for IssuePriority parsing and ordering."""

    def test_round_trip(self):
        for member in IssuePriority:
            assert IssuePriority.from_code(member.code) is member

    def test_case_insensitive(self):
        assert IssuePriority.from_code("highest") is IssuePriority.HIGHEST

    def test_unknown(self):
        with pytest.raises(UnknownCategoryError):
            IssuePriority.from_code("Blocker")

    def test_ordering(self):
        assert IssuePriority.LOWEST < IssuePriority.LOW < IssuePriority.MEDIUM
        assert IssuePriority.HIGHEST > IssuePriority.HIGH
        assert IssuePriority.MEDIUM <= IssuePriority.MEDIUM
        assert max(IssuePriority) is IssuePriority.HIGHEST


class TestPagination:
    """Tests for PageNumber and PageSize."""

    def test_defaults(self):
        assert PageNumber.of(None).value == 1
        assert PageSize.of(None).value == DEFAULT_PAGE_SIZE

    def test_page_number_minimum(self):
        assert PageNumber.of(1).value == 1
        with pytest.raises(PageNumberError) as exc_info:
            PageNumber.of(0)
        assert "at least 1" in str(exc_info.value)

    def test_page_size_bounds(self):
        assert PageSize.of(1).value == 1
        assert PageSize.of(MAX_PAGE_SIZE).value == MAX_PAGE_SIZE

        with pytest.raises(PageSizeError):
            PageSize.of(0)
        with pytest.raises(PageSizeError) as exc_info:
            PageSize.of(MAX_PAGE_SIZE + 1)
        assert "between 1 and 100" in str(exc_info.value)

    def test_rejects_non_integers(self):
        with pytest.raises(PageNumberError):
            PageNumber.of("2")
        with pytest.raises(PageSizeError):
            PageSize.of(True)

    def test_offset_for(self):
        size = PageSize.of(10)
        assert size.offset_for(PageNumber.of(1)) == 0
        assert size.offset_for(PageNumber.of(3)) == 20
