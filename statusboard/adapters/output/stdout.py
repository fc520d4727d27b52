"""Stdout snapshot renderer.

Implements SnapshotRendererPort by printing a snapshot either as JSON
(a lossless serialization of the data model) or as human-readable text.
Every requested view gets a line, including the ones that failed.
"""

import asyncio
import dataclasses
import json
import logging
import sys
from datetime import datetime
from enum import Enum
from typing import Any, Literal, TextIO

from statusboard.adapters.sources.types import (
    Alert,
    NewRelicIncident,
    OncallEntry,
    PullRequest,
    SentryIssue,
    Ticket,
    UnreadChannel,
    WorkflowRun,
)
from statusboard.core.models import FetchError, FetchErrorKind, Snapshot, ViewResult
from statusboard.core.ports import SnapshotRendererPort

logger = logging.getLogger(__name__)

MAX_ITEMS_PER_VIEW = 10


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return value


def _error_to_dict(error: FetchError) -> dict[str, Any]:
    return {
        "kind": error.kind.value,
        "message": error.message,
        "retry_after": error.retry_after,
    }


def view_result_to_dict(result: ViewResult) -> dict[str, Any]:
    """Serialize one view result."""
    return {
        "view": result.view,
        "ok": result.ok,
        "state": result.state.value,
        "elapsed": result.elapsed,
        "data": _jsonable(result.data) if result.ok else None,
        "error": _error_to_dict(result.error) if result.error is not None else None,
    }


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    """Serialize a snapshot into JSON-ready primitives, preserving result order."""
    return {
        "started_at": snapshot.started_at.isoformat(),
        "total_elapsed": snapshot.total_elapsed,
        "requested_views": sorted(snapshot.requested_views),
        "results": [view_result_to_dict(r) for r in snapshot.results],
    }


def describe_error(error: FetchError) -> str:
    """Short, user-facing description of a failure kind."""
    if error.kind is FetchErrorKind.TIMEOUT:
        return "timed out"
    if error.kind is FetchErrorKind.UNAUTHORIZED:
        return "needs re-auth"
    if error.kind is FetchErrorKind.RATE_LIMITED:
        if error.retry_after is not None:
            return f"rate limited, retry in {error.retry_after:.0f}s"
        return "rate limited"
    if error.kind is FetchErrorKind.NETWORK:
        return f"network error: {error.message}" if error.message else "network error"
    return f"error: {error.message}" if error.message else "unexpected error"


def _summarize_item(item: Any) -> str:
    if isinstance(item, Ticket):
        return f"{item.key} [{item.status}] {item.summary}"
    if isinstance(item, PullRequest):
        draft = " (draft)" if item.draft else ""
        return f"{item.repo}#{item.number} {item.title}{draft}"
    if isinstance(item, WorkflowRun):
        outcome = item.conclusion or item.status
        return f"{item.repo} {item.name} on {item.branch}: {outcome}"
    if isinstance(item, UnreadChannel):
        prefix = "@" if item.is_direct else "#"
        return f"{prefix}{item.name}: {item.unread_count} unread"
    if isinstance(item, OncallEntry):
        return f"{item.escalation_policy} L{item.escalation_level}: {item.user}"
    if isinstance(item, Alert):
        return f"#{item.number} [{item.status}/{item.urgency}] {item.title} ({item.service})"
    if isinstance(item, SentryIssue):
        return f"{item.short_id} [{item.level}] {item.title} ({item.count} events)"
    if isinstance(item, NewRelicIncident):
        return f"[{item.priority}] {item.title}"
    return str(item)


class StdoutSnapshotRenderer(SnapshotRendererPort):
    """Prints snapshots to stdout."""

    def __init__(
        self,
        output_format: Literal["text", "json"] = "text",
        stream: TextIO | None = None,
    ):
        """Initialize stdout renderer.

        Args:
            output_format: "text" for people, "json" for scripts.
            stream: Where to write. Defaults to sys.stdout at render time.
        """
        if output_format not in ("text", "json"):
            raise ValueError(f"Unsupported output format: {output_format}")
        self.output_format = output_format
        self.stream = stream

    async def render(self, snapshot: Snapshot) -> None:
        """Render a snapshot in the configured format."""
        if self.output_format == "json":
            output = json.dumps(snapshot_to_dict(snapshot), indent=2)
        else:
            output = self.format_text(snapshot)
        await asyncio.to_thread(self._write, output)

    def _write(self, output: str) -> None:
        stream = self.stream or sys.stdout
        print(output, file=stream, flush=True)

    @staticmethod
    def format_text(snapshot: Snapshot) -> str:
        """Format a snapshot as human-readable text."""
        lines = [
            "=" * 80,
            f"STATUSBOARD  {snapshot.started_at:%Y-%m-%d %H:%M:%S} UTC  "
            f"({snapshot.total_elapsed:.2f}s)",
            "=" * 80,
        ]

        if not snapshot.results:
            lines.append("No views selected.")
            return "\n".join(lines)

        width = max(len(r.view) for r in snapshot.results)
        for result in snapshot.results:
            name = result.view.ljust(width)
            if result.error is not None:
                lines.append(
                    f"{name}  FAILED  {describe_error(result.error)} ({result.elapsed:.2f}s)"
                )
                continue

            if result.data is None:
                items = []
            elif isinstance(result.data, (list, tuple)):
                items = list(result.data)
            else:
                items = [result.data]
            lines.append(f"{name}  OK      {len(items)} item(s) ({result.elapsed:.2f}s)")
            for item in items[:MAX_ITEMS_PER_VIEW]:
                lines.append(f"{' ' * width}    - {_summarize_item(item)}")
            if len(items) > MAX_ITEMS_PER_VIEW:
                lines.append(f"{' ' * width}    ... {len(items) - MAX_ITEMS_PER_VIEW} more")

        return "\n".join(lines)
