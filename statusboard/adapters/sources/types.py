"""View payload types produced by the source adapters.

The core treats these as opaque; only the adapters that build them and
the output adapters that render them look inside.
"""

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class Ticket:
    """A Jira issue assigned to the current user."""

    key: str
    summary: str
    status: str
    priority: str | None
    url: str
    updated: datetime | None


@dataclass(frozen=True)
class PullRequest:
    """An open pull request authored by the token owner."""

    number: int
    title: str
    repo: str  # owner/name
    url: str
    draft: bool
    updated: datetime | None


@dataclass(frozen=True)
class WorkflowRun:
    """A recent GitHub Actions run."""

    id: int
    repo: str
    name: str
    branch: str
    status: str  # queued, in_progress, completed
    conclusion: str | None  # success, failure, cancelled, ...
    url: str
    updated: datetime | None

    @property
    def failed(self) -> bool:
        return self.conclusion in ("failure", "timed_out", "startup_failure")


@dataclass(frozen=True)
class UnreadChannel:
    """A Slack conversation with unread messages."""

    id: str
    name: str
    unread_count: int
    is_direct: bool


@dataclass(frozen=True)
class OncallEntry:
    """A PagerDuty on-call assignment."""

    user: str
    escalation_policy: str
    escalation_level: int
    schedule: str | None
    start: datetime | None
    end: datetime | None


@dataclass(frozen=True)
class Alert:
    """A triggered or acknowledged PagerDuty incident."""

    id: str
    number: int
    title: str
    status: str  # triggered, acknowledged
    urgency: str  # high, low
    service: str
    url: str
    created_at: datetime | None


@dataclass(frozen=True)
class SentryIssue:
    """An unresolved Sentry issue."""

    id: str
    short_id: str
    title: str
    level: str
    project: str
    count: int
    user_count: int
    url: str
    last_seen: datetime | None


@dataclass(frozen=True)
class NewRelicIncident:
    """An open New Relic issue."""

    id: str
    title: str
    priority: str
    state: str
    entities: tuple[str, ...]
    created_at: datetime | None


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 string or epoch milliseconds into a datetime.

    Returns None for missing or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None
