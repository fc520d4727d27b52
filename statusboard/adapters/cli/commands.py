"""CLI command implementations for the dashboard.

This adapter maps CLI commands (show, refresh, views) to DashboardPort
operations. It handles CLI-specific selection parsing and error reporting;
per-view failures are part of a successful result, only contract
violations (unknown views, bad flags) produce an error status.
"""

import asyncio
import logging
from typing import Any

from statusboard.core.errors import UnknownViewError
from statusboard.core.ports import DashboardPort, SnapshotRendererPort
from statusboard.core.registry import ViewRegistry
from statusboard.core.selection import selection_from_flags

logger = logging.getLogger(__name__)


class CLICommandHandler:
    """Handles CLI commands by delegating to DashboardPort."""

    def __init__(
        self,
        dashboard: DashboardPort,
        renderer: SnapshotRendererPort,
        registry: ViewRegistry | None = None,
    ):
        """Initialize the CLI command handler.

        Args:
            dashboard: DashboardPort implementation that builds snapshots.
            renderer: Where snapshots are rendered.
            registry: Registry to describe in the `views` command.
        """
        self.dashboard = dashboard
        self.renderer = renderer
        self.registry = registry

    async def show(
        self,
        only: str | None = None,
        exclude: str | None = None,
        all_views: bool = False,
        operation: str = "show",
        cancel: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        """Build and render one snapshot.

        Args:
            only: Comma-separated views to include (``--only``).
            exclude: Comma-separated views to skip (``--except``).
            all_views: Fetch every registered view (``--all``).
            operation: Name reported back in the result.
            cancel: Set to stop waiting on views still in flight; the
                snapshot built so far is rendered and reported as
                interrupted.

        Returns:
            Dictionary with status, operation and a per-run summary, or
            status "error" and a message for usage/contract errors.
        """
        try:
            selection = selection_from_flags(only=only, exclude=exclude, all_views=all_views)
        except ValueError as e:
            logger.error(f"Invalid view selection: {e}")
            return {"status": "error", "operation": operation, "message": str(e)}

        try:
            snapshot = await self.dashboard.build_snapshot(selection, cancel=cancel)
        except UnknownViewError as e:
            logger.error(f"Failed to build snapshot: {e}")
            return {
                "status": "error",
                "operation": operation,
                "view": e.view,
                "message": str(e),
            }

        await self.renderer.render(snapshot)

        return {
            "status": "success",
            "operation": operation,
            "views": list(snapshot.views),
            "ok": len(snapshot.successes()),
            "failed": [r.view for r in snapshot.failures()],
            "total_elapsed": snapshot.total_elapsed,
            "interrupted": cancel is not None and cancel.is_set(),
        }

    async def list_views(self) -> dict[str, Any]:
        """Describe the registered views and whether each runs by default."""
        if self.registry is None:
            return {
                "status": "error",
                "operation": "views",
                "message": "No registry available",
            }

        return {
            "status": "success",
            "operation": "views",
            "data": [
                {
                    "view": view,
                    "enabled_by_default": self.registry.is_enabled_by_default(view),
                }
                for view in self.registry.all_view_ids()
            ],
        }


async def run_command(
    handler: CLICommandHandler,
    command: str,
    args: dict[str, Any],
) -> dict[str, Any]:
    """Run a CLI command.

    Entry point for executing CLI commands. Maps command names to handler methods.

    Args:
        handler: CLICommandHandler to dispatch to.
        command: Command name ('show', 'refresh', 'views').
        args: Dictionary of command arguments.

    Returns:
        Dictionary with command result.

    Raises:
        ValueError: If command is not recognized.
    """
    if command in ("show", "refresh"):
        return await handler.show(
            only=args.get("only"),
            exclude=args.get("exclude"),
            all_views=args.get("all_views", False),
            operation=command,
            cancel=args.get("cancel"),
        )

    elif command == "views":
        return await handler.list_views()

    else:
        raise ValueError(f"Unknown command: {command}")
