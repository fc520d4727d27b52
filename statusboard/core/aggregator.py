"""Concurrent fan-out/fan-in over source adapters.

The aggregator launches every selected view's fetch at once, bounds each
one by its own deadline, and assembles a Snapshot in the caller's view
order. A view that misses its deadline is finalized as a timeout and its
underlying call is detached, never awaited, so a hung source cannot
delay the snapshot.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from .errors import classify_exception
from .models import (
    FetchContext,
    FetchError,
    Snapshot,
    ViewData,
    ViewId,
    ViewResult,
    ViewState,
)
from .ports import SourceAdapter
from .registry import ViewRegistry

logger = logging.getLogger(__name__)


@dataclass
class _Flight:
    """Bookkeeping for one in-flight view."""

    view: ViewId
    context: FetchContext
    launched_at: float
    state: ViewState = ViewState.NOT_STARTED

    def transition(self, new_state: ViewState) -> None:
        if self.state.is_terminal:
            raise ValueError(
                f"View {self.view} is already {self.state.value}, cannot move to {new_state.value}"
            )
        if new_state is ViewState.IN_FLIGHT and self.state is not ViewState.NOT_STARTED:
            raise ValueError(f"View {self.view} cannot be launched twice")
        if new_state.is_terminal and self.state is not ViewState.IN_FLIGHT:
            raise ValueError(f"View {self.view} finished before it was launched")
        self.state = new_state


async def _invoke(adapter: SourceAdapter, context: FetchContext) -> ViewData:
    """Call an adapter's fetch, moving blocking adapters onto a thread."""
    fetch = adapter.fetch
    if inspect.iscoroutinefunction(fetch):
        return await fetch(context)

    result = await asyncio.to_thread(fetch, context)
    if inspect.isawaitable(result):
        return await result
    return result


def _consume_late_result(task: "asyncio.Task[ViewData]") -> None:
    """Retrieve the outcome of an abandoned fetch so it is not reported as lost."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Discarded late failure from abandoned fetch: {exc!r}")
    else:
        logger.debug("Discarded late result from abandoned fetch")


class Aggregator:
    """Runs selected source adapters concurrently and builds a Snapshot.

    The aggregator holds no lock across adapter calls and shares no
    mutable state between views.
    """

    def __init__(
        self,
        registry: ViewRegistry,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.registry = registry
        self.clock = clock

    async def run(
        self,
        views: Sequence[str],
        per_view_timeout: float,
        timeouts: Mapping[str, float] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> Snapshot:
        """Fetch every view concurrently and return the combined snapshot.

        Args:
            views: Views to fetch. The snapshot's results follow this order.
            per_view_timeout: Seconds each view may take, measured from its
                own launch.
            timeouts: Optional per-view overrides, in seconds. Views without
                one fall back to the registry override, then to
                ``per_view_timeout``.
            cancel: Optional global cancellation. When set, every view still
                in flight is finalized as a timeout and the snapshot is
                returned immediately.

        Returns:
            Snapshot with exactly one ViewResult per view.

        Raises:
            UnknownViewError: If a view is not registered. Nothing is
                launched in that case.
            ValueError: If a timeout is not positive or a view is repeated.
        """
        if per_view_timeout <= 0:
            raise ValueError(f"per_view_timeout must be positive, got {per_view_timeout}")
        if len(set(views)) != len(views):
            raise ValueError(f"views must not contain duplicates: {list(views)}")

        # Resolve everything up front so a contract violation aborts the
        # run before any adapter is invoked.
        plan: list[tuple[ViewId, SourceAdapter, float]] = []
        for view in views:
            adapter = self.registry.adapter_for(view)
            timeout = self._timeout_for(view, per_view_timeout, timeouts)
            plan.append((ViewId(view), adapter, timeout))

        started_at = datetime.now(timezone.utc)
        run_start = self.clock()

        flights: dict[asyncio.Task[ViewData], _Flight] = {}
        for view, adapter, timeout in plan:
            launched_at = self.clock()
            flight = _Flight(
                view=view,
                context=FetchContext(
                    view=view, deadline=launched_at + timeout, clock=self.clock
                ),
                launched_at=launched_at,
            )
            task = asyncio.create_task(
                _invoke(adapter, flight.context), name=f"statusboard-fetch-{view}"
            )
            flight.transition(ViewState.IN_FLIGHT)
            flights[task] = flight
            logger.debug(f"Launched fetch for view {view} with {timeout:.2f}s timeout")

        results: dict[ViewId, ViewResult] = {}
        pending = set(flights)
        cancel_waiter = asyncio.ensure_future(cancel.wait()) if cancel is not None else None

        try:
            while pending:
                next_deadline = min(flights[t].context.deadline for t in pending)
                wait_for = set(pending)
                if cancel_waiter is not None:
                    wait_for.add(cancel_waiter)

                done, _ = await asyncio.wait(
                    wait_for,
                    timeout=max(0.0, next_deadline - self.clock()),
                    return_when=asyncio.FIRST_COMPLETED,
                )
                now = self.clock()

                for task in done & pending:
                    flight = flights[task]
                    results[flight.view] = self._complete(flight, task, now)
                    pending.discard(task)

                if cancel_waiter is not None and cancel_waiter.done():
                    if pending:
                        logger.warning(
                            f"Run cancelled with {len(pending)} view(s) still in flight"
                        )
                    for task in pending:
                        flight = flights[task]
                        results[flight.view] = self._abandon(flight, task, now)
                    pending.clear()
                    break

                for task in [t for t in pending if flights[t].context.deadline <= now]:
                    flight = flights[task]
                    results[flight.view] = self._abandon(flight, task, now)
                    pending.discard(task)
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()
            # Only reached with work outstanding if run() itself was cancelled
            for task in pending:
                flights[task].context.cancelled.set()
                task.cancel()
                task.add_done_callback(_consume_late_result)

        snapshot = Snapshot(
            requested_views=frozenset(v for v, _, _ in plan),
            results=tuple(results[v] for v, _, _ in plan),
            started_at=started_at,
            total_elapsed=self.clock() - run_start,
        )

        failed = len(snapshot.failures())
        logger.info(
            f"Snapshot built in {snapshot.total_elapsed:.2f}s: "
            f"{len(snapshot.results)} views, "
            f"{len(snapshot.results) - failed} ok, "
            f"{failed} failed"
        )
        return snapshot

    def _timeout_for(
        self,
        view: str,
        per_view_timeout: float,
        timeouts: Mapping[str, float] | None,
    ) -> float:
        if timeouts and view in timeouts:
            timeout = timeouts[view]
        else:
            timeout = self.registry.timeout_for(view, per_view_timeout)
        if timeout <= 0:
            raise ValueError(f"Timeout for view {view} must be positive, got {timeout}")
        return timeout

    def _complete(
        self, flight: _Flight, task: "asyncio.Task[ViewData]", now: float
    ) -> ViewResult:
        flight.transition(ViewState.COMPLETED)
        elapsed = now - flight.launched_at

        if task.cancelled():
            logger.warning(f"Fetch for view {flight.view} was cancelled externally")
            return ViewResult.failure(
                flight.view, FetchError.unexpected("fetch was cancelled"), elapsed
            )

        exc = task.exception()
        if exc is not None:
            error = classify_exception(exc)
            logger.warning(
                f"View {flight.view} failed after {elapsed:.2f}s: "
                f"{error.kind.value} {error.message}".rstrip()
            )
            return ViewResult.failure(flight.view, error, elapsed)

        logger.debug(f"View {flight.view} completed in {elapsed:.2f}s")
        return ViewResult.success(flight.view, task.result(), elapsed)

    def _abandon(
        self, flight: _Flight, task: "asyncio.Task[ViewData]", now: float
    ) -> ViewResult:
        flight.transition(ViewState.TIMED_OUT)
        elapsed = now - flight.launched_at
        logger.warning(f"View {flight.view} timed out after {elapsed:.2f}s")

        # Best effort: signal the adapter and cancel the task, but never
        # wait for either to take effect.
        flight.context.cancelled.set()
        task.cancel()
        task.add_done_callback(_consume_late_result)
        return ViewResult.timed_out(flight.view, elapsed)
