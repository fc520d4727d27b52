"""Optional result caching around a single source adapter.

The aggregator never caches; this decorator is applied per adapter by
the composition root when a cache TTL is configured. Only successful
payloads are cached, so a failing upstream is retried on the next run.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from .models import FetchContext, ViewData
from .ports import SourceAdapter

logger = logging.getLogger(__name__)


class CachingSourceAdapter:
    """Reuses an adapter's last successful payload for ``ttl_seconds``.

    Concurrent callers share a single in-flight fetch of the inner
    adapter. The inner adapter must be a coroutine-based adapter.
    """

    def __init__(
        self,
        inner: SourceAdapter,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._value: ViewData = None
        self._expires_at: float | None = None
        self._in_flight: asyncio.Future[ViewData] | None = None

    async def fetch(self, context: FetchContext) -> ViewData:
        if self._expires_at is not None and self.clock() < self._expires_at:
            logger.debug(f"Serving view {context.view} from cache")
            return self._value

        if self._in_flight is None or self._in_flight.done():
            self._in_flight = asyncio.ensure_future(self._refresh(context))

        # Shielded so one caller timing out does not cancel the shared fetch
        return await asyncio.shield(self._in_flight)

    async def _refresh(self, context: FetchContext) -> ViewData:
        value = await self.inner.fetch(context)
        self._value = value
        self._expires_at = self.clock() + self.ttl_seconds
        return value

    def invalidate(self) -> None:
        """Drop the cached payload so the next fetch goes upstream."""
        self._value = None
        self._expires_at = None

    async def close(self) -> None:
        close = getattr(self.inner, "close", None)
        if close is not None:
            await close()
