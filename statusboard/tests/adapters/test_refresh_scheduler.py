"""Tests for the watch-mode refresh scheduler."""

import asyncio
from datetime import UTC, datetime

import pytest

from statusboard.adapters.scheduler.refresh import RefreshScheduler
from statusboard.core.errors import UnknownViewError
from statusboard.core.models import Snapshot
from statusboard.core.selection import Defaults, Only
from statusboard.tests.fakes import FakeDashboardPort, FakeRenderer


@pytest.fixture
def empty_snapshot() -> Snapshot:
    return Snapshot(
        requested_views=frozenset(),
        results=(),
        started_at=datetime.now(UTC),
        total_elapsed=0.0,
    )


@pytest.fixture
def dashboard(empty_snapshot: Snapshot) -> FakeDashboardPort:
    return FakeDashboardPort(default_snapshot=empty_snapshot)


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


class TestRefreshScheduler:
    @pytest.mark.asyncio
    async def test_run_once_builds_and_renders(
        self, dashboard: FakeDashboardPort, renderer: FakeRenderer
    ) -> None:
        scheduler = RefreshScheduler(dashboard, renderer, selection=Only(["jira"]))
        await scheduler.run_once()

        assert dashboard.selections == [Only(["jira"])]
        assert renderer.render_call_count == 1
        assert scheduler.cycles_completed == 1

    @pytest.mark.asyncio
    async def test_defaults_selection(
        self, dashboard: FakeDashboardPort, renderer: FakeRenderer
    ) -> None:
        scheduler = RefreshScheduler(dashboard, renderer)
        await scheduler.run_once()
        assert dashboard.selections == [Defaults()]

    @pytest.mark.asyncio
    async def test_runs_max_cycles(
        self, dashboard: FakeDashboardPort, renderer: FakeRenderer
    ) -> None:
        scheduler = RefreshScheduler(
            dashboard, renderer, refresh_interval_seconds=0.01, max_cycles=3
        )
        await asyncio.wait_for(scheduler.start(), timeout=2.0)

        assert renderer.render_call_count == 3
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_stop_interrupts_the_wait(
        self, dashboard: FakeDashboardPort, renderer: FakeRenderer
    ) -> None:
        scheduler = RefreshScheduler(dashboard, renderer, refresh_interval_seconds=60)
        task = asyncio.create_task(scheduler.start())

        await asyncio.sleep(0.05)
        await scheduler.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert renderer.render_call_count == 1
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_cancel_event_is_shared_with_runs(
        self, dashboard: FakeDashboardPort, renderer: FakeRenderer
    ) -> None:
        scheduler = RefreshScheduler(dashboard, renderer)
        await scheduler.run_once()
        assert dashboard.cancel_events[0] is scheduler._cancel

    @pytest.mark.asyncio
    async def test_cycle_errors_do_not_stop_the_loop(
        self, dashboard: FakeDashboardPort, renderer: FakeRenderer
    ) -> None:
        renderer.should_fail = True
        scheduler = RefreshScheduler(
            dashboard, renderer, refresh_interval_seconds=0.01, max_cycles=2
        )
        await asyncio.wait_for(scheduler.start(), timeout=2.0)

        assert dashboard.build_snapshot_call_count == 2
        assert scheduler._consecutive_failures == 2

    @pytest.mark.asyncio
    async def test_unknown_view_stops_the_loop(
        self, dashboard: FakeDashboardPort, renderer: FakeRenderer
    ) -> None:
        dashboard.error_to_raise = UnknownViewError("nope")
        scheduler = RefreshScheduler(dashboard, renderer, refresh_interval_seconds=0.01)

        with pytest.raises(UnknownViewError):
            await asyncio.wait_for(scheduler.start(), timeout=2.0)
        assert dashboard.build_snapshot_call_count == 1

    def test_interval_must_be_positive(
        self, dashboard: FakeDashboardPort, renderer: FakeRenderer
    ) -> None:
        with pytest.raises(ValueError):
            RefreshScheduler(dashboard, renderer, refresh_interval_seconds=0)
