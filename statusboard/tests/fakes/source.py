"""Fake SourceAdapter implementations for testing."""

import asyncio
import threading
import time
from typing import Any

from statusboard.core.models import FetchContext, ViewData


class FakeSourceAdapter:
    """In-memory source adapter for testing.

    Returns a canned payload after an optional delay, raises a configured
    exception, or hangs until cancelled. Records every call for assertions.
    """

    def __init__(
        self,
        result: Any = None,
        delay: float = 0.0,
        error: Exception | None = None,
        hang: bool = False,
    ) -> None:
        """Initialize the fake.

        Args:
            result: Payload returned by fetch.
            delay: Seconds to sleep before returning or raising.
            error: Exception raised instead of returning a payload.
            hang: Never return; only cancellation ends the call.
        """
        self.result = result
        self.delay = delay
        self.error = error
        self.hang = hang
        self.fetch_call_count = 0
        self.contexts: list[FetchContext] = []
        self.completed = 0
        self.was_cancelled = False
        self.close_call_count = 0

    async def fetch(self, context: FetchContext) -> ViewData:
        """Return the canned payload, honoring delay, error and hang."""
        self.fetch_call_count += 1
        self.contexts.append(context)
        try:
            if self.hang:
                await asyncio.Event().wait()
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.was_cancelled = True
            raise

        if self.error is not None:
            raise self.error
        self.completed += 1
        return self.result

    async def close(self) -> None:
        self.close_call_count += 1


class BlockingSourceAdapter:
    """Synchronous adapter that blocks its thread, for testing offloading.

    Blocks for ``delay`` seconds, or until ``release()`` is called or the
    context is cancelled when ``delay`` is None.
    """

    def __init__(self, result: Any = None, delay: float | None = 0.0) -> None:
        self.result = result
        self.delay = delay
        self.fetch_call_count = 0
        self.thread_names: list[str] = []
        self.finished = threading.Event()
        self._released = threading.Event()

    def release(self) -> None:
        """Unblock a fetch started with ``delay=None``."""
        self._released.set()

    def fetch(self, context: FetchContext) -> ViewData:
        self.fetch_call_count += 1
        self.thread_names.append(threading.current_thread().name)
        if self.delay is None:
            while not self._released.wait(0.01):
                if context.is_cancelled:
                    break
        else:
            time.sleep(self.delay)
        self.finished.set()
        return self.result
