"""Refresh scheduler adapter.

Implements the `watch` cadence: a long-running asyncio loop that builds
and renders a snapshot at a configurable interval. SIGINT/SIGTERM act
as a global cancellation, so a run in flight returns its best snapshot
right away and the loop stops.
"""

import asyncio
import logging
import signal

from statusboard.core.errors import UnknownViewError
from statusboard.core.models import Snapshot
from statusboard.core.ports import DashboardPort, SnapshotRendererPort
from statusboard.core.selection import Defaults, Selection

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Asyncio-based scheduler that re-renders the dashboard periodically."""

    def __init__(
        self,
        dashboard: DashboardPort,
        renderer: SnapshotRendererPort,
        selection: Selection | None = None,
        refresh_interval_seconds: float = 60,
        max_cycles: int | None = None,
    ):
        """Initialize refresh scheduler.

        Args:
            dashboard: DashboardPort implementation that builds snapshots.
            renderer: Where each snapshot is rendered.
            selection: Views to fetch each cycle (defaults to Defaults()).
            refresh_interval_seconds: Pause between the end of one cycle and
                the start of the next.
            max_cycles: Stop after this many cycles (None = until stopped).
        """
        if refresh_interval_seconds <= 0:
            raise ValueError("refresh_interval_seconds must be positive")
        self.dashboard = dashboard
        self.renderer = renderer
        self.selection = selection if selection is not None else Defaults()
        self.refresh_interval_seconds = refresh_interval_seconds
        self.max_cycles = max_cycles
        self.running = False
        self.cycles_completed = 0
        self._cancel = asyncio.Event()
        self._consecutive_failures = 0

    async def start(self) -> None:
        """Start the refresh loop and block until it stops.

        Raises:
            UnknownViewError: If the selection names a view the registry
                does not know. This is a configuration error, not
                something a later cycle could recover from.
        """
        if self.running:
            logger.warning("Refresh scheduler already running")
            return

        self.running = True
        self._cancel.clear()
        logger.info(
            f"Starting refresh scheduler with {self.refresh_interval_seconds}s interval"
        )

        self._setup_signal_handlers()

        try:
            await self._run_loop()
        except asyncio.CancelledError:
            logger.info("Refresh scheduler cancelled")
        finally:
            self.running = False
            self._remove_signal_handlers()
            logger.info("Refresh scheduler stopped")

    async def stop(self) -> None:
        """Stop the loop, cutting short any run that is still in flight."""
        if not self.running:
            return

        logger.info("Stopping refresh scheduler...")
        self.running = False
        self._cancel.set()

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        try:
            loop = asyncio.get_running_loop()

            def _handle_signal(sig: int) -> None:
                logger.info(f"Received signal {sig}, initiating graceful shutdown...")
                asyncio.create_task(self.stop())

            loop.add_signal_handler(signal.SIGTERM, _handle_signal, signal.SIGTERM)
            loop.add_signal_handler(signal.SIGINT, _handle_signal, signal.SIGINT)
        except NotImplementedError:
            # Signal handlers not available on Windows
            logger.debug("Signal handlers not available on this platform")
        except (RuntimeError, ValueError) as e:
            # Not in the main thread, e.g. under some test runners
            logger.debug(f"Signal handlers not installed: {e}")

    def _remove_signal_handlers(self) -> None:
        try:
            loop = asyncio.get_running_loop()
            loop.remove_signal_handler(signal.SIGTERM)
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError, ValueError) as e:
            logger.debug(f"Signal handlers not removed: {e}")

    async def run_once(self) -> Snapshot:
        """Build and render a single snapshot."""
        snapshot = await self.dashboard.build_snapshot(self.selection, cancel=self._cancel)
        await self.renderer.render(snapshot)
        self.cycles_completed += 1
        return snapshot

    async def _run_loop(self) -> None:
        """Main refresh loop."""
        cycle_number = 0

        while self.running:
            cycle_number += 1
            try:
                logger.debug(f"Starting refresh cycle #{cycle_number}")
                snapshot = await self.run_once()
                self._consecutive_failures = 0
                logger.info(
                    f"Refresh cycle #{cycle_number} completed in "
                    f"{snapshot.total_elapsed:.2f}s: "
                    f"{len(snapshot.successes())} ok, {len(snapshot.failures())} failed"
                )
            except asyncio.CancelledError:
                raise
            except UnknownViewError:
                logger.error("Selection references an unknown view, stopping refresh")
                raise
            except Exception as e:
                self._consecutive_failures += 1
                logger.error(
                    f"Error in refresh cycle #{cycle_number}: {e} "
                    f"(consecutive failures: {self._consecutive_failures})",
                    exc_info=True,
                )

            if self.max_cycles is not None and cycle_number >= self.max_cycles:
                break

            # Wait before next cycle, waking early on stop()
            if self.running:
                try:
                    await asyncio.wait_for(
                        self._cancel.wait(), timeout=self.refresh_interval_seconds
                    )
                except asyncio.TimeoutError:
                    pass
