"""Dashboard service: the driving-port implementation.

Ties the selection filter and the aggregator together with the
configured timeouts, and remembers a summary of the last run.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from .aggregator import Aggregator
from .models import FetchErrorKind, Snapshot
from .ports import DashboardPort
from .registry import ViewRegistry
from .selection import Selection, resolve_selection

logger = logging.getLogger(__name__)


class DashboardService(DashboardPort):
    """Implements snapshot building for the CLI and the refresh scheduler."""

    def __init__(
        self,
        registry: ViewRegistry,
        per_view_timeout: float,
        view_timeouts: Mapping[str, float] | None = None,
        aggregator: Aggregator | None = None,
    ):
        if per_view_timeout <= 0:
            raise ValueError(f"per_view_timeout must be positive, got {per_view_timeout}")
        self.registry = registry
        self.per_view_timeout = per_view_timeout
        self.view_timeouts = dict(view_timeouts or {})
        self.aggregator = aggregator or Aggregator(registry)
        self._last_snapshot: Snapshot | None = None

    async def build_snapshot(
        self,
        selection: Selection,
        cancel: asyncio.Event | None = None,
    ) -> Snapshot:
        """Resolve the selection and run every selected view concurrently."""
        views = resolve_selection(selection, self.registry)
        logger.debug(f"Resolved selection {selection!r} to {list(views)}")

        snapshot = await self.aggregator.run(
            views,
            per_view_timeout=self.per_view_timeout,
            timeouts={v: t for v, t in self.view_timeouts.items() if v in views},
            cancel=cancel,
        )
        self._last_snapshot = snapshot
        return snapshot

    async def get_last_summary(self) -> dict[str, Any]:
        """Summary of the most recent snapshot, or an empty dict."""
        snapshot = self._last_snapshot
        if snapshot is None:
            return {}

        timed_out = sum(
            1
            for r in snapshot.failures()
            if r.error is not None and r.error.kind is FetchErrorKind.TIMEOUT
        )
        return {
            "views": list(snapshot.views),
            "ok": len(snapshot.successes()),
            "failed": len(snapshot.failures()),
            "timed_out": timed_out,
            "total_elapsed": snapshot.total_elapsed,
            "started_at": snapshot.started_at.isoformat(),
        }
