"""Composition root for the Statusboard dashboard.

This module is the ONLY location that imports both core domain logic
and concrete adapter implementations. All wiring of dependencies
happens here, creating a clear entry point for the application.

Module Structure:
- Configuration loading via config module
- Source adapter instantiation and view registration
- Core service initialization
- Command selection (show, refresh, watch, views)
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from collections.abc import Sequence

from statusboard.adapters.cli.commands import CLICommandHandler, run_command
from statusboard.adapters.output.stdout import StdoutSnapshotRenderer
from statusboard.adapters.scheduler.refresh import RefreshScheduler
from statusboard.adapters.sources.github import (
    GitHubPullRequestsAdapter,
    GitHubWorkflowRunsAdapter,
)
from statusboard.adapters.sources.jira import JiraSourceAdapter
from statusboard.adapters.sources.newrelic import NewRelicIncidentsAdapter
from statusboard.adapters.sources.pagerduty import (
    PagerDutyAlertsAdapter,
    PagerDutyOncallAdapter,
)
from statusboard.adapters.sources.sentry import SentryIssuesAdapter
from statusboard.adapters.sources.slack import SlackUnreadAdapter
from statusboard.config import Settings, load_settings
from statusboard.core.cache import CachingSourceAdapter
from statusboard.core.dashboard_service import DashboardService
from statusboard.core.errors import UnknownViewError
from statusboard.core.models import ViewId
from statusboard.core.registry import ViewRegistration, ViewRegistry
from statusboard.core.selection import selection_from_flags

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure application logging.

    Logs go to stderr; stdout carries the rendered snapshot.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    level = getattr(logging, log_level, logging.WARNING)

    if log_format == "json":
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )


def build_registry(settings: Settings, use_cache: bool = True) -> ViewRegistry:
    """Instantiate one source adapter per view and register them.

    Views whose credentials are missing, or that are listed in
    ``disabled_views``, stay registered but are left out of the default
    selection. Selecting one explicitly yields an unauthorized failure.

    Args:
        settings: Loaded application settings.
        use_cache: Wrap adapters in a result cache when a TTL is configured.
    """
    logger = logging.getLogger(__name__)

    adapters = [
        (
            "jira",
            JiraSourceAdapter(
                base_url=settings.jira_base_url,
                email=settings.jira_email,
                api_token=settings.jira_api_token,
                jql=settings.jira_jql,
            ),
        ),
        (
            "gh_prs",
            GitHubPullRequestsAdapter(
                github_token=settings.github_token,
                api_url=settings.github_api_url,
            ),
        ),
        (
            "gh_runs",
            GitHubWorkflowRunsAdapter(
                github_token=settings.github_token,
                repos=settings.github_repos,
                api_url=settings.github_api_url,
            ),
        ),
        (
            "slack_unread",
            SlackUnreadAdapter(
                token=settings.slack_token,
                api_url=settings.slack_api_url,
            ),
        ),
        (
            "oncall",
            PagerDutyOncallAdapter(
                api_token=settings.pagerduty_api_token,
                api_url=settings.pagerduty_api_url,
            ),
        ),
        (
            "pagerduty_alerts",
            PagerDutyAlertsAdapter(
                api_token=settings.pagerduty_api_token,
                api_url=settings.pagerduty_api_url,
            ),
        ),
        (
            "sentry_issues",
            SentryIssuesAdapter(
                token=settings.sentry_token,
                organization=settings.sentry_org,
                api_url=settings.sentry_api_url,
            ),
        ),
        (
            "newrelic_incidents",
            NewRelicIncidentsAdapter(
                api_key=settings.newrelic_api_key,
                account_id=settings.newrelic_account_id,
                api_url=settings.newrelic_api_url,
            ),
        ),
    ]

    disabled = set(settings.disabled_views)
    known = {view for view, _ in adapters}
    for view in sorted(disabled - known):
        logger.warning(f"disabled_views names an unknown view: {view}")
    for view in sorted(set(settings.view_timeouts) - known):
        logger.warning(f"view_timeouts names an unknown view: {view}")

    cache = use_cache and settings.cache_ttl_seconds > 0
    registrations = []
    for view, adapter in adapters:
        configured = adapter.is_configured()
        if not configured:
            logger.info(f"View {view} has no credentials configured, not enabled by default")
        registrations.append(
            ViewRegistration(
                view=ViewId(view),
                adapter=(
                    CachingSourceAdapter(adapter, settings.cache_ttl_seconds)
                    if cache
                    else adapter
                ),
                enabled_by_default=configured and view not in disabled,
            )
        )

    return ViewRegistry(registrations)


async def close_adapters(registry: ViewRegistry) -> None:
    """Close every adapter that holds resources (HTTP clients)."""
    logger = logging.getLogger(__name__)
    for view in registry:
        close = getattr(registry.adapter_for(view), "close", None)
        if close is None:
            continue
        try:
            await close()
        except Exception as e:
            logger.warning(f"Failed to close adapter for view {view}: {e}")


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="statusboard",
        description="Fetch the views you care about concurrently and print one snapshot.",
    )
    subparsers = parser.add_subparsers(dest="command")

    selection = argparse.ArgumentParser(add_help=False)
    group = selection.add_mutually_exclusive_group()
    group.add_argument(
        "--only",
        metavar="VIEWS",
        help="Comma-separated views to fetch, e.g. jira,gh_prs",
    )
    group.add_argument(
        "--except",
        dest="exclude",
        metavar="VIEWS",
        help="Comma-separated views to skip",
    )
    group.add_argument(
        "--all",
        dest="all_views",
        action="store_true",
        help="Fetch every registered view, including those disabled by default",
    )
    selection.add_argument("--json", action="store_true", help="Print the snapshot as JSON")
    selection.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="Per-view timeout (overrides PER_VIEW_TIMEOUT_SECONDS)",
    )

    subparsers.add_parser("show", parents=[selection], help="Print one snapshot (default)")
    subparsers.add_parser(
        "refresh", parents=[selection], help="Print one snapshot, bypassing the cache"
    )
    watch = subparsers.add_parser(
        "watch", parents=[selection], help="Re-render the snapshot periodically"
    )
    watch.add_argument(
        "--interval",
        type=float,
        metavar="SECONDS",
        help="Seconds between refreshes (overrides REFRESH_INTERVAL_SECONDS)",
    )
    subparsers.add_parser("views", help="List registered views")

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse arguments, treating a bare flag list as the `show` command."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or (args[0].startswith("-") and args[0] not in ("-h", "--help")):
        args.insert(0, "show")

    parsed = build_parser().parse_args(args)
    if parsed.command in ("show", "refresh", "watch"):
        if parsed.timeout is not None and parsed.timeout <= 0:
            build_parser().error("--timeout must be positive")
    if parsed.command == "watch" and parsed.interval is not None and parsed.interval <= 0:
        build_parser().error("--interval must be positive")
    return parsed


async def bootstrap(argv: Sequence[str] | None = None) -> int:
    """Load configuration, wire adapters, and run the selected command.

    This is the composition root: the single place where all components
    are instantiated and wired together.

    Steps:
    1. Parse arguments and load configuration from environment
    2. Configure logging
    3. Instantiate source adapters and build the view registry
    4. Initialize core services
    5. Run the selected command

    Returns:
        Process exit code.
    """
    # Step 1: Arguments and configuration
    args = parse_args(argv)
    settings = load_settings()

    # Step 2: Configure logging
    configure_logging(settings.log_level, settings.log_format)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting statusboard ({args.command})...")

    # Step 3: Adapters and registry
    registry = build_registry(settings, use_cache=args.command != "refresh")
    logger.info(
        f"Registered {len(registry)} views, "
        f"{len(registry.default_view_ids())} enabled by default"
    )

    try:
        # Step 4: Core services
        per_view_timeout = getattr(args, "timeout", None) or settings.per_view_timeout_seconds
        dashboard = DashboardService(
            registry=registry,
            per_view_timeout=per_view_timeout,
            view_timeouts=settings.view_timeouts,
        )
        output_format = "json" if getattr(args, "json", False) else settings.output_format
        renderer = StdoutSnapshotRenderer(output_format=output_format)

        # Step 5: Run command
        if args.command == "watch":
            return await _run_watch(args, settings, dashboard, renderer)

        handler = CLICommandHandler(dashboard, renderer, registry=registry)
        cancel = asyncio.Event()
        _install_interrupt_handlers(cancel)
        try:
            result = await run_command(
                handler,
                args.command,
                {
                    "only": getattr(args, "only", None),
                    "exclude": getattr(args, "exclude", None),
                    "all_views": getattr(args, "all_views", False),
                    "cancel": cancel,
                },
            )
        finally:
            _remove_interrupt_handlers()

        if args.command == "views" and result["status"] == "success":
            print(json.dumps(result["data"], indent=2))

        if result["status"] == "error":
            print(f"statusboard: {result['message']}", file=sys.stderr)
            return EXIT_USAGE

        if result.get("interrupted"):
            logger.warning("Interrupted, rendered the views completed so far")
            return EXIT_INTERRUPTED

        return EXIT_OK

    finally:
        await close_adapters(registry)


def _install_interrupt_handlers(cancel: asyncio.Event) -> None:
    """Make SIGINT/SIGTERM cut the current run short instead of aborting it."""
    logger = logging.getLogger(__name__)
    try:
        loop = asyncio.get_running_loop()

        def _handle_signal(sig: int) -> None:
            logger.info(f"Received signal {sig}, returning the best snapshot so far...")
            cancel.set()

        loop.add_signal_handler(signal.SIGINT, _handle_signal, signal.SIGINT)
        loop.add_signal_handler(signal.SIGTERM, _handle_signal, signal.SIGTERM)
    except NotImplementedError:
        # Signal handlers not available on Windows
        logger.debug("Signal handlers not available on this platform")
    except (RuntimeError, ValueError) as e:
        logger.debug(f"Signal handlers not installed: {e}")


def _remove_interrupt_handlers() -> None:
    try:
        loop = asyncio.get_running_loop()
        loop.remove_signal_handler(signal.SIGINT)
        loop.remove_signal_handler(signal.SIGTERM)
    except (NotImplementedError, RuntimeError, ValueError) as e:
        logger = logging.getLogger(__name__)
        logger.debug(f"Signal handlers not removed: {e}")


async def _run_watch(
    args: argparse.Namespace,
    settings: Settings,
    dashboard: DashboardService,
    renderer: StdoutSnapshotRenderer,
) -> int:
    """Run the refresh loop until interrupted."""
    logger = logging.getLogger(__name__)

    try:
        selection = selection_from_flags(
            only=args.only, exclude=args.exclude, all_views=args.all_views
        )
    except ValueError as e:
        print(f"statusboard: {e}", file=sys.stderr)
        return EXIT_USAGE

    scheduler = RefreshScheduler(
        dashboard=dashboard,
        renderer=renderer,
        selection=selection,
        refresh_interval_seconds=args.interval or settings.refresh_interval_seconds,
    )

    try:
        await scheduler.start()
    except UnknownViewError as e:
        logger.error(f"Watch stopped: {e}")
        print(f"statusboard: {e}", file=sys.stderr)
        return EXIT_USAGE

    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> None:
    """Application entry point.

    Exit codes:
        0: Snapshot rendered (individual views may still have failed)
        1: Fatal bootstrap or runtime error
        2: Usage error or unknown view
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    logger = logging.getLogger(__name__)
    try:
        exit_code = asyncio.run(bootstrap(argv))
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        sys.exit(EXIT_INTERRUPTED)
    except asyncio.CancelledError:
        logger.info("Graceful shutdown completed")
        sys.exit(EXIT_OK)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(EXIT_FATAL)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
