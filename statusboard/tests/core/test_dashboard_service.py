"""Tests for DashboardService, the DashboardPort used by the CLI."""

import asyncio

import pytest

from statusboard.core.dashboard_service import DashboardService
from statusboard.core.errors import SourceRateLimited, UnknownViewError
from statusboard.core.models import FetchErrorKind, ViewId, ViewState
from statusboard.core.registry import ViewRegistration, ViewRegistry
from statusboard.core.selection import All, Defaults, Except, Only
from statusboard.tests.fakes import FakeSourceAdapter


@pytest.fixture
def adapters() -> dict[str, FakeSourceAdapter]:
    return {
        "jira": FakeSourceAdapter(result=["PROJ-1"]),
        "gh_prs": FakeSourceAdapter(error=SourceRateLimited("429", retry_after=30)),
        "slack_unread": FakeSourceAdapter(result=[]),
    }


@pytest.fixture
def registry(adapters: dict[str, FakeSourceAdapter]) -> ViewRegistry:
    return ViewRegistry(
        [
            ViewRegistration(ViewId("jira"), adapters["jira"]),
            ViewRegistration(ViewId("gh_prs"), adapters["gh_prs"]),
            ViewRegistration(
                ViewId("slack_unread"), adapters["slack_unread"], enabled_by_default=False
            ),
        ]
    )


@pytest.fixture
def service(registry: ViewRegistry) -> DashboardService:
    return DashboardService(registry=registry, per_view_timeout=1.0)


class TestBuildSnapshot:
    @pytest.mark.asyncio
    async def test_defaults_skip_disabled_views(
        self, service: DashboardService, adapters: dict[str, FakeSourceAdapter]
    ) -> None:
        snapshot = await service.build_snapshot(Defaults())

        assert snapshot.views == ("jira", "gh_prs")
        assert adapters["slack_unread"].fetch_call_count == 0

    @pytest.mark.asyncio
    async def test_all(self, service: DashboardService) -> None:
        snapshot = await service.build_snapshot(All())
        assert snapshot.views == ("jira", "gh_prs", "slack_unread")

    @pytest.mark.asyncio
    async def test_only_includes_disabled_view(self, service: DashboardService) -> None:
        snapshot = await service.build_snapshot(Only(["slack_unread"]))
        assert snapshot.views == ("slack_unread",)
        assert snapshot.results[0].ok

    @pytest.mark.asyncio
    async def test_except(self, service: DashboardService) -> None:
        snapshot = await service.build_snapshot(Except(["gh_prs"]))
        assert snapshot.views == ("jira", "slack_unread")

    @pytest.mark.asyncio
    async def test_failures_are_data(self, service: DashboardService) -> None:
        snapshot = await service.build_snapshot(Defaults())

        error = snapshot.result_for(ViewId("gh_prs")).error
        assert error.kind is FetchErrorKind.RATE_LIMITED
        assert error.retry_after == 30

    @pytest.mark.asyncio
    async def test_unknown_view_propagates(
        self, service: DashboardService, adapters: dict[str, FakeSourceAdapter]
    ) -> None:
        with pytest.raises(UnknownViewError):
            await service.build_snapshot(Only(["jira", "nope"]))
        assert adapters["jira"].fetch_call_count == 0

    @pytest.mark.asyncio
    async def test_view_timeouts_apply_only_to_selected_views(self) -> None:
        registry = ViewRegistry(
            [
                ViewRegistration(ViewId("a"), FakeSourceAdapter(hang=True)),
                ViewRegistration(ViewId("b"), FakeSourceAdapter()),
            ]
        )
        service = DashboardService(
            registry=registry,
            per_view_timeout=5.0,
            view_timeouts={"a": 0.05, "missing": 1.0},
        )

        snapshot = await asyncio.wait_for(service.build_snapshot(All()), timeout=2.0)
        assert snapshot.result_for(ViewId("a")).state is ViewState.TIMED_OUT
        assert snapshot.result_for(ViewId("b")).ok

    @pytest.mark.asyncio
    async def test_cancel_event_is_forwarded(self) -> None:
        registry = ViewRegistry([ViewRegistration(ViewId("a"), FakeSourceAdapter(hang=True))])
        service = DashboardService(registry=registry, per_view_timeout=30.0)
        cancel = asyncio.Event()
        cancel.set()

        snapshot = await asyncio.wait_for(
            service.build_snapshot(All(), cancel=cancel), timeout=2.0
        )
        assert snapshot.results[0].error.kind is FetchErrorKind.TIMEOUT

    def test_non_positive_timeout_rejected(self, registry: ViewRegistry) -> None:
        with pytest.raises(ValueError):
            DashboardService(registry=registry, per_view_timeout=0)


class TestLastSummary:
    @pytest.mark.asyncio
    async def test_empty_before_first_run(self, service: DashboardService) -> None:
        assert await service.get_last_summary() == {}

    @pytest.mark.asyncio
    async def test_summary_after_run(self, service: DashboardService) -> None:
        await service.build_snapshot(Defaults())
        summary = await service.get_last_summary()

        assert summary["views"] == ["jira", "gh_prs"]
        assert summary["ok"] == 1
        assert summary["failed"] == 1
        assert summary["timed_out"] == 0
        assert "started_at" in summary
