"""Tests for the stdout snapshot renderer."""

import io
import json
from datetime import UTC, datetime

import pytest

from statusboard.adapters.output.stdout import (
    StdoutSnapshotRenderer,
    describe_error,
    snapshot_to_dict,
)
from statusboard.adapters.sources.types import PullRequest, Ticket
from statusboard.core.models import FetchError, Snapshot, ViewId, ViewResult


@pytest.fixture
def snapshot() -> Snapshot:
    results = (
        ViewResult.success(
            ViewId("jira"),
            (
                Ticket(
                    key="PROJ-1",
                    summary="Fix login",
                    status="In Progress",
                    priority="High",
                    url="https://example.atlassian.net/browse/PROJ-1",
                    updated=datetime(2024, 5, 1, 10, 0, tzinfo=UTC),
                ),
            ),
            0.05,
        ),
        ViewResult.failure(ViewId("gh_prs"), FetchError.unauthorized("github: HTTP 401"), 0.01),
        ViewResult.timed_out(ViewId("slack_unread"), 0.2),
    )
    return Snapshot(
        requested_views=frozenset(r.view for r in results),
        results=results,
        started_at=datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
        total_elapsed=0.21,
    )


class TestSnapshotToDict:
    def test_preserves_result_order(self, snapshot: Snapshot) -> None:
        data = snapshot_to_dict(snapshot)
        assert [r["view"] for r in data["results"]] == ["jira", "gh_prs", "slack_unread"]
        assert data["requested_views"] == ["gh_prs", "jira", "slack_unread"]

    def test_is_json_serializable(self, snapshot: Snapshot) -> None:
        data = json.loads(json.dumps(snapshot_to_dict(snapshot)))

        jira = data["results"][0]
        assert jira["ok"] is True
        assert jira["data"][0]["key"] == "PROJ-1"
        assert jira["data"][0]["updated"] == "2024-05-01T10:00:00+00:00"

        gh = data["results"][1]
        assert gh["ok"] is False
        assert gh["data"] is None
        assert gh["error"]["kind"] == "unauthorized"

        slack = data["results"][2]
        assert slack["state"] == "timed_out"
        assert slack["error"]["kind"] == "timeout"


class TestDescribeError:
    def test_descriptions(self) -> None:
        assert describe_error(FetchError.unauthorized()) == "needs re-auth"
        assert describe_error(FetchError.timeout()) == "timed out"
        assert describe_error(FetchError.rate_limited(30)) == "rate limited, retry in 30s"
        assert describe_error(FetchError.rate_limited()) == "rate limited"
        assert describe_error(FetchError.network("reset")) == "network error: reset"
        assert describe_error(FetchError.unexpected("")) == "unexpected error"


class TestStdoutSnapshotRenderer:
    @pytest.mark.asyncio
    async def test_text_output_lists_every_view(self, snapshot: Snapshot) -> None:
        stream = io.StringIO()
        await StdoutSnapshotRenderer(stream=stream).render(snapshot)
        output = stream.getvalue()

        assert "STATUSBOARD" in output
        assert "PROJ-1 [In Progress] Fix login" in output
        assert "gh_prs" in output and "needs re-auth" in output
        assert "slack_unread" in output and "timed out" in output

    @pytest.mark.asyncio
    async def test_json_output(self, snapshot: Snapshot) -> None:
        stream = io.StringIO()
        await StdoutSnapshotRenderer(output_format="json", stream=stream).render(snapshot)
        data = json.loads(stream.getvalue())
        assert len(data["results"]) == 3

    def test_empty_snapshot(self) -> None:
        empty = Snapshot(
            requested_views=frozenset(),
            results=(),
            started_at=datetime.now(UTC),
            total_elapsed=0.0,
        )
        assert "No views selected." in StdoutSnapshotRenderer.format_text(empty)

    def test_long_views_are_truncated(self) -> None:
        prs = tuple(
            PullRequest(
                number=i,
                title=f"PR {i}",
                repo="acme/web",
                url="",
                draft=False,
                updated=None,
            )
            for i in range(15)
        )
        result = ViewResult.success(ViewId("gh_prs"), prs, 0.1)
        snapshot = Snapshot(
            requested_views=frozenset({result.view}),
            results=(result,),
            started_at=datetime.now(UTC),
            total_elapsed=0.1,
        )
        text = StdoutSnapshotRenderer.format_text(snapshot)
        assert "15 item(s)" in text
        assert "... 5 more" in text

    def test_unsupported_format(self) -> None:
        with pytest.raises(ValueError):
            StdoutSnapshotRenderer(output_format="xml")  # type: ignore[arg-type]
