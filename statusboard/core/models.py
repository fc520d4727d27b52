"""Domain models for the Statusboard aggregation engine.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, NewType, TypeAlias

ViewId = NewType("ViewId", str)

# Opaque payload produced by a source adapter. Only the adapter that
# produced it and the renderer interpret it.
ViewData: TypeAlias = Any


class FetchErrorKind(Enum):
    """Exhaustive classification of a single view's failure."""

    TIMEOUT = "timeout"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class FetchError:
    """A typed per-view failure.

    The aggregator records these as data; it never inspects ``message``.
    ``retry_after`` is only meaningful for RATE_LIMITED and is in seconds.
    """

    kind: FetchErrorKind
    message: str = ""
    retry_after: float | None = None

    def __post_init__(self) -> None:
        """Validate fetch error invariants on creation."""
        if self.retry_after is not None and self.kind is not FetchErrorKind.RATE_LIMITED:
            raise ValueError("retry_after is only valid for rate_limited errors")
        if self.retry_after is not None and self.retry_after < 0:
            raise ValueError(
                f"retry_after must be non-negative, got {self.retry_after}"
            )

    @classmethod
    def timeout(cls, message: str = "deadline exceeded") -> "FetchError":
        return cls(FetchErrorKind.TIMEOUT, message)

    @classmethod
    def unauthorized(cls, message: str = "") -> "FetchError":
        return cls(FetchErrorKind.UNAUTHORIZED, message)

    @classmethod
    def rate_limited(
        cls, retry_after: float | None = None, message: str = ""
    ) -> "FetchError":
        return cls(FetchErrorKind.RATE_LIMITED, message, retry_after)

    @classmethod
    def network(cls, message: str) -> "FetchError":
        return cls(FetchErrorKind.NETWORK, message)

    @classmethod
    def unexpected(cls, message: str) -> "FetchError":
        return cls(FetchErrorKind.UNEXPECTED, message)


class ViewState(Enum):
    """Lifecycle of one view inside a single aggregator run.

    Valid transitions:
    - NOT_STARTED → IN_FLIGHT
    - IN_FLIGHT → COMPLETED
    - IN_FLIGHT → TIMED_OUT

    COMPLETED and TIMED_OUT are terminal. A view that timed out stays
    TIMED_OUT even if its underlying call resolves later.
    """

    NOT_STARTED = "not_started"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (ViewState.COMPLETED, ViewState.TIMED_OUT)


@dataclass(frozen=True)
class ViewResult:
    """The outcome of fetching one view.

    Exactly one of ``data`` (success) or ``error`` (failure) carries the
    outcome. ``elapsed`` is wall-clock seconds from launch to completion
    or timeout.
    """

    view: ViewId
    elapsed: float
    data: ViewData = None
    error: FetchError | None = None
    state: ViewState = ViewState.COMPLETED

    def __post_init__(self) -> None:
        """Validate view result invariants on creation."""
        if self.elapsed < 0:
            raise ValueError(f"elapsed must be non-negative, got {self.elapsed}")
        if not self.state.is_terminal:
            raise ValueError(f"ViewResult requires a terminal state, got {self.state}")
        if self.state is ViewState.TIMED_OUT and (
            self.error is None or self.error.kind is not FetchErrorKind.TIMEOUT
        ):
            raise ValueError("a timed out view must carry a timeout error")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, view: ViewId, data: ViewData, elapsed: float) -> "ViewResult":
        return cls(view=view, elapsed=elapsed, data=data)

    @classmethod
    def failure(cls, view: ViewId, error: FetchError, elapsed: float) -> "ViewResult":
        return cls(view=view, elapsed=elapsed, error=error)

    @classmethod
    def timed_out(cls, view: ViewId, elapsed: float) -> "ViewResult":
        return cls(
            view=view,
            elapsed=elapsed,
            error=FetchError.timeout(),
            state=ViewState.TIMED_OUT,
        )


@dataclass(frozen=True)
class Snapshot:
    """Immutable combined result of one aggregator run.

    ``results`` follows the caller-supplied view order, never the order
    in which sources completed.
    """

    requested_views: frozenset[ViewId]
    results: tuple[ViewResult, ...]
    started_at: datetime
    total_elapsed: float

    def __post_init__(self) -> None:
        """Validate snapshot invariants on creation."""
        if isinstance(self.requested_views, (set, list, tuple)):
            object.__setattr__(self, "requested_views", frozenset(self.requested_views))
        if isinstance(self.results, list):
            object.__setattr__(self, "results", tuple(self.results))

        seen = [r.view for r in self.results]
        if len(seen) != len(set(seen)):
            raise ValueError("snapshot contains duplicate view results")
        if set(seen) != set(self.requested_views):
            raise ValueError(
                "snapshot results must cover exactly the requested views"
            )
        if self.total_elapsed < 0:
            raise ValueError(
                f"total_elapsed must be non-negative, got {self.total_elapsed}"
            )

    @property
    def views(self) -> tuple[ViewId, ...]:
        return tuple(r.view for r in self.results)

    def result_for(self, view: ViewId) -> ViewResult:
        """Return the result for ``view``.

        Raises:
            KeyError: If the view was not part of this snapshot.
        """
        for result in self.results:
            if result.view == view:
                return result
        raise KeyError(view)

    def successes(self) -> tuple[ViewResult, ...]:
        return tuple(r for r in self.results if r.ok)

    def failures(self) -> tuple[ViewResult, ...]:
        return tuple(r for r in self.results if not r.ok)


@dataclass
class FetchContext:
    """Per-call context handed to a source adapter.

    ``deadline`` is an absolute time on ``clock`` (``time.monotonic()``
    unless the aggregator was given another clock). Adapters should size
    their own I/O timeouts from ``remaining()`` and may poll ``cancelled``
    to stop early once the aggregator has given up on them.
    """

    view: ViewId
    deadline: float
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False, compare=False)

    def remaining(self) -> float:
        """Seconds left before the deadline, never negative."""
        return max(0.0, self.deadline - self.clock())

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()
