"""Port interfaces for the Statusboard aggregation engine.

These define the boundaries between core domain logic and external
adapters. Implementations live in the adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - SourceAdapter: Fetch the data for one view from one external service
   - SnapshotRendererPort: Hand a finished snapshot to an output medium

2. **Driving Ports** (adapters/external systems call into core)
   - DashboardPort: Entry point for building a snapshot from a selection
"""

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .models import FetchContext, Snapshot, ViewData

if TYPE_CHECKING:
    from .selection import Selection


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


@runtime_checkable
class SourceAdapter(Protocol):
    """Capability for fetching one view's data from one external service.

    Any object with a matching ``fetch`` satisfies this port; the
    aggregator is written against the capability, never against a
    concrete adapter class.

    Implementations must handle:
    - Mapping every failure into a SourceError subclass (or a builtin
      TimeoutError / OSError, which are classified by type)
    - Sizing their own I/O timeouts from ``context.remaining()``
    - Owning their credentials and session state, including thread-safety
      if reused across runs

    ``fetch`` is normally a coroutine function. A plain function is also
    accepted and is run in a worker thread so it cannot stall sibling
    views.
    """

    async def fetch(self, context: FetchContext) -> ViewData:
        """Fetch the current data for this view.

        Args:
            context: Deadline and cancellation signal for this call.

        Returns:
            Opaque view payload (a tuple of tickets, alerts, etc.).

        Raises:
            SourceError: Typed failure, recorded in the view's result.
        """
        ...


class SnapshotRendererPort(ABC):
    """Port for presenting a snapshot to the user.

    Renderers must show every view in the snapshot, including failed
    ones, so that partial failure stays visible.
    """

    @abstractmethod
    async def render(self, snapshot: Snapshot) -> None:
        """Render a snapshot.

        Args:
            snapshot: The snapshot to present.

        Raises:
            Exception: If the output medium is unavailable.
        """


# ============================================================================
# DRIVING PORTS (Adapters/external systems call into core)
# ============================================================================


class DashboardPort(ABC):
    """Port for building dashboard snapshots.

    Driving port: the CLI and the refresh scheduler invoke these methods.
    The implementation lives in the core (dashboard_service.py).
    """

    @abstractmethod
    async def build_snapshot(
        self,
        selection: "Selection",
        cancel: asyncio.Event | None = None,
    ) -> Snapshot:
        """Resolve a selection and fetch every selected view concurrently.

        Args:
            selection: Which views to fetch (All, Defaults, Only, Except).
            cancel: Optional global cancellation; when set, the run returns the
                best snapshot obtainable at that instant.

        Returns:
            Snapshot with exactly one result per resolved view.

        Raises:
            UnknownViewError: If the selection references an unknown view.
        """

    @abstractmethod
    async def get_last_summary(self) -> dict[str, Any]:
        """Get summary stats from the last snapshot built.

        Returns:
            Dictionary with views, ok, failed, timed_out, total_elapsed
            and started_at. Empty if no snapshot has been built yet.
        """
