"""Tests for the command-line entry point."""

import argparse
from unittest.mock import AsyncMock, patch

import pytest

import main
from src.jirasync.exceptions import ConnectionPoolError, RateLimitError
from src.jirasync.sync.use_cases.errors import IssueSyncError, Phase


class TestBuildParser:
    """Tests for argument parsing."""

    def test_sync_issues_days(self):
        args = main.build_parser().parse_args(["sync-issues", "--days", "7"])
        assert (args.command, args.days) == ("sync-issues", 7)

    def test_sync_days_default_none(self):
        assert main.build_parser().parse_args(["sync"]).days is None

    def test_list_pagination(self):
        args = main.build_parser().parse_args(["list-issues", "--page-number", "2", "--page-size", "5"])
        assert (args.page_number, args.page_size) == (2, 5)

    def test_find_ids(self):
        args = main.build_parser().parse_args(["find-projects", "1", "2"])
        assert args.ids == ["1", "2"]

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args([])

    def test_update_requires_fields(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args(["update-project", "--id", "1"])


class TestRun:
    """Tests for main.run exit codes."""

    @pytest.fixture
    def pool(self):
        with patch.object(main, "create_pool_from_config", new=AsyncMock(return_value="pool")), \
                patch.object(main, "DatabaseConfig"), \
                patch.object(main, "close_pool", new=AsyncMock()) as close_pool:
            yield close_pool

    @pytest.mark.asyncio
    async def test_successful_sync(self, pool):
        results = {"projects": {"success": True}, "issues": {"success": True}}

        with patch.object(main, "run_sync", new=AsyncMock(return_value=results)):
            code = await main.run(argparse.Namespace(command="sync", days=1))

        assert code == 0
        pool.assert_awaited_once_with("pool")

    @pytest.mark.asyncio
    async def test_sync_with_failures(self, pool):
        results = {"issues": {"success": False}}

        with patch.object(main, "run_sync", new=AsyncMock(return_value=results)):
            code = await main.run(argparse.Namespace(command="sync-issues", days=1))

        assert code == 2

    @pytest.mark.asyncio
    async def test_operation_error(self, pool, capsys):
        error = IssueSyncError("Failed to fetch batch 0", Phase.FETCH, cause=RateLimitError())

        with patch.object(main, "run_sync", new=AsyncMock(side_effect=error)):
            code = await main.run(argparse.Namespace(command="sync-issues", days=1))

        assert code == 1
        assert "issue_sync failed during fetch" in capsys.readouterr().err
        pool.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_query_command(self, pool, capsys):
        page = {"items": [], "total_count": 0}

        with patch.object(main, "run_query", new=AsyncMock(return_value=page)):
            code = await main.run(argparse.Namespace(command="list-issues"))

        assert code == 0
        assert '"total_count": 0' in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_database_unavailable(self):
        with patch.object(main, "DatabaseConfig"), patch.object(
            main,
            "create_pool_from_config",
            new=AsyncMock(side_effect=ConnectionPoolError("refused")),
        ):
            code = await main.run(argparse.Namespace(command="list-issues"))

        assert code == 1
