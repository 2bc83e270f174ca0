#!/usr/bin/env python3
"""Jira Issue & Project Sync CLI.

Pulls projects and issues from Jira Cloud into PostgreSQL and reads the
synced tables back through the query use cases.

Environment Variables Required:
    - JIRA_BASE_URL: Jira Cloud site, e.g. https://acme.atlassian.net
    - JIRA_EMAIL: Account email for basic auth
    - JIRA_API_TOKEN: API token for basic auth
    - DATABASE_URL: PostgreSQL connection string (or POSTGRES_* parts)

Example Usage:
    $ python main.py sync-projects                 # Sync all projects
    $ python main.py sync-issues --days 7          # Issues updated in the last week
    $ python main.py sync --days 1                 # Projects, then issues
    $ python main.py list-issues --page-number 2   # Second page of issues
    $ python main.py find-issues 10001 10002       # Issues by id
    $ python main.py update-project --id 10000 --key ABC --name "Renamed"
"""
import argparse
import asyncio
import json
import signal
import sys
from datetime import datetime, timedelta, timezone

from dotenv import load_dotenv

load_dotenv()

# Local imports
from src.jirasync.api import JiraClient, close_pool, create_pool_from_config
from src.jirasync.config import DatabaseConfig, JiraApiConfig, SyncConfig, configure_logging
from src.jirasync.exceptions import JiraSyncError
from src.jirasync.sync.adapters import (
    IssueFieldMapper,
    JiraIssueAPI,
    JiraProjectAPI,
    PostgresIssueQueryRepository,
    PostgresIssueRepository,
    PostgresProjectQueryRepository,
    PostgresProjectRepository,
    PostgresTransactionExecutor,
    ProjectFieldMapper,
)
from src.jirasync.sync.use_cases import (
    ApplicationError,
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

SYNC_COMMANDS = ("sync-projects", "sync-issues", "sync")


def print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def banner(title: str) -> None:
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


async def run_project_sync(client: JiraClient, db_pool, config: SyncConfig) -> dict:
    """Run project synchronization.

    Returns:
        Sync report dictionary
    """
    use_case = SyncProjectsUseCase(
        project_api=JiraProjectAPI(client),
        project_repo=PostgresProjectRepository(db_pool),
        transaction_executor=PostgresTransactionExecutor(
            db_pool, timeout=config.transaction_timeout_seconds
        ),
        field_mapper=ProjectFieldMapper(),
        config=config,
    )
    report = await use_case.execute()
    return report.to_dict()


async def run_issue_sync(
    client: JiraClient,
    db_pool,
    jira_config: JiraApiConfig,
    config: SyncConfig,
    days: int,
) -> dict:
    """Run issue synchronization for issues updated in the last ``days`` days.

    Ctrl-C stops the run after the batch in flight is committed.

    Returns:
        Sync report dictionary
    """
    use_case = SyncIssuesUseCase(
        issue_api=JiraIssueAPI.from_config(
            client, jira_config, since_inclusive=config.since_inclusive
        ),
        issue_repo=PostgresIssueRepository(db_pool),
        project_repo=PostgresProjectRepository(db_pool),
        transaction_executor=PostgresTransactionExecutor(
            db_pool, timeout=config.transaction_timeout_seconds
        ),
        field_mapper=IssueFieldMapper(),
        config=config,
    )

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except (NotImplementedError, RuntimeError):
        pass  # Windows event loops

    since = datetime.now(timezone.utc) - timedelta(days=days)
    print(f"[Main] Syncing issues updated since {since.isoformat()}")
    try:
        report = await use_case.execute(since, cancel_event=cancel_event)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
    return report.to_dict()


async def run_sync(args: argparse.Namespace, db_pool) -> dict:
    """Run the sync commands that need a Jira client."""
    jira_config = JiraApiConfig.from_env()
    config = SyncConfig.from_env()
    days = args.days if args.days is not None else config.default_days
    results = {}

    async with JiraClient.from_config(jira_config) as client:
        if args.command in ("sync-projects", "sync"):
            banner("SYNCING PROJECTS")
            results["projects"] = await run_project_sync(client, db_pool, config)

        if args.command in ("sync-issues", "sync"):
            banner("SYNCING ISSUES")
            results["issues"] = await run_issue_sync(
                client, db_pool, jira_config, config, days
            )

    return results


async def run_query(args: argparse.Namespace, db_pool):
    """Run a query or project command against the database."""
    if args.command == "list-issues":
        use_case = ListIssuesQueryUseCase(PostgresIssueQueryRepository(db_pool))
        return (await use_case.execute(args.page_number, args.page_size)).to_dict()

    if args.command == "find-issues":
        use_case = FindIssuesByIdsQueryUseCase(PostgresIssueQueryRepository(db_pool))
        return [dto.to_dict() for dto in await use_case.execute(args.ids)]

    if args.command == "list-projects":
        use_case = ListProjectsQueryUseCase(PostgresProjectQueryRepository(db_pool))
        return (await use_case.execute(args.page_number, args.page_size)).to_dict()

    if args.command == "find-projects":
        use_case = FindProjectsByIdsQueryUseCase(PostgresProjectQueryRepository(db_pool))
        return [dto.to_dict() for dto in await use_case.execute(args.ids)]

    repo = PostgresProjectRepository(db_pool)
    executor = PostgresTransactionExecutor(db_pool)

    if args.command == "create-project":
        project = await CreateProjectUseCase(repo, executor).execute(
            CreateProjectInput(id=args.id, key=args.key, name=args.name)
        )
    else:
        project = await UpdateProjectUseCase(repo, executor).execute(
            UpdateProjectInput(id=args.id, key=args.key, name=args.name)
        )
    return {"id": project.id.value, "key": project.key.value, "name": project.name.value}


async def run(args: argparse.Namespace) -> int:
    """Main orchestration function.

    Returns:
        Process exit code
    """
    start_time = datetime.now(timezone.utc)

    try:
        db_pool = await create_pool_from_config(DatabaseConfig.from_env())
    except JiraSyncError as e:
        print(f"[Main] Database setup failed: {e}", file=sys.stderr)
        return 1

    exit_code = 0
    try:
        if args.command in SYNC_COMMANDS:
            print(f"[Main] Starting at {start_time.isoformat()}")
            results = await run_sync(args, db_pool)
            banner("SYNC COMPLETE")
            print_json(results)
            if not all(report["success"] for report in results.values()):
                exit_code = 2
        else:
            print_json(await run_query(args, db_pool))
    except ApplicationError as e:
        print(f"[Main] {e.operation} failed during {e.phase.value}: {e}", file=sys.stderr)
        print_json(e.to_dict())
        exit_code = 1
    except JiraSyncError as e:
        print(f"[Main] {e}", file=sys.stderr)
        exit_code = 1
    finally:
        await close_pool(db_pool)

    if args.command in SYNC_COMMANDS:
        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        print(f"\n[Main] Completed in {duration:.1f} seconds")
    return exit_code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync Jira projects and issues to PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py sync-projects                  # Sync all projects
  python main.py sync-issues --days 7           # Sync issues updated in the last week
  python main.py sync                           # Sync projects, then issues
  python main.py list-projects --page-size 50   # First 50 projects
  python main.py find-projects 10000 10001      # Projects by id
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Sync commands
    subparsers.add_parser("sync-projects", help="Sync all projects from Jira")
    for name, help_text in (
        ("sync-issues", "Sync issues of all known projects"),
        ("sync", "Sync projects, then their issues"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--days",
            type=int,
            metavar="DAYS",
            help="Lookback window for the updated cutoff (default SYNC_DEFAULT_DAYS or 1)"
        )

    # Queries
    for name, help_text in (
        ("list-issues", "List synced issues"),
        ("list-projects", "List synced projects"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--page-number", type=int, help="1-based page number (default 1)")
        sub.add_argument("--page-size", type=int, help="Items per page, 1-100 (default 10)")

    for name, help_text in (
        ("find-issues", "Show synced issues by id"),
        ("find-projects", "Show synced projects by id"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("ids", nargs="+", metavar="ID")

    # Project commands
    for name, help_text in (
        ("create-project", "Create a project row"),
        ("update-project", "Change a project's key and name"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--id", required=True)
        sub.add_argument("--key", required=True)
        sub.add_argument("--name", required=True)

    return parser


def main():
    args = build_parser().parse_args()
    configure_logging()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
