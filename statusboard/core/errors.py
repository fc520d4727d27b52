"""Error taxonomy for the aggregation engine.

Two families live here:

- ``UnknownViewError``: a whole-run contract violation. It always
  propagates out of the aggregator and the selection filter.
- ``SourceError`` and its subclasses: raised by source adapters and
  converted into per-view ``FetchError`` values. They never escape a run.
"""

import asyncio

from .models import FetchError, FetchErrorKind


class UnknownViewError(LookupError):
    """A view id that the registry does not know was referenced."""

    def __init__(self, view: str):
        super().__init__(f"Unknown view: {view}")
        self.view = view


class SourceError(Exception):
    """Base class for failures raised by source adapters."""

    kind: FetchErrorKind = FetchErrorKind.UNEXPECTED

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_fetch_error(self) -> FetchError:
        return FetchError(self.kind, self.message)


class SourceTimeout(SourceError):
    kind = FetchErrorKind.TIMEOUT


class SourceUnauthorized(SourceError):
    kind = FetchErrorKind.UNAUTHORIZED


class SourceRateLimited(SourceError):
    kind = FetchErrorKind.RATE_LIMITED

    def __init__(self, message: str = "", retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after

    def to_fetch_error(self) -> FetchError:
        return FetchError.rate_limited(self.retry_after, self.message)


class SourceNetworkError(SourceError):
    kind = FetchErrorKind.NETWORK


class SourceUnexpected(SourceError):
    kind = FetchErrorKind.UNEXPECTED


def classify_exception(exc: BaseException) -> FetchError:
    """Map any exception raised by an adapter into a ``FetchError``.

    Classification is by exception type only; the message is carried
    along for display but never parsed.
    """
    if isinstance(exc, SourceError):
        return exc.to_fetch_error()
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return FetchError.timeout(str(exc) or "deadline exceeded")
    if isinstance(exc, (ConnectionError, OSError)):
        return FetchError.network(str(exc) or type(exc).__name__)
    return FetchError.unexpected(f"{type(exc).__name__}: {exc}")


__all__ = [
    "SourceError",
    "SourceNetworkError",
    "SourceRateLimited",
    "SourceTimeout",
    "SourceUnauthorized",
    "SourceUnexpected",
    "UnknownViewError",
    "classify_exception",
]
