"""Fake/mock implementations of ports for testing.

These in-memory implementations allow core domain logic to be tested
without external dependencies:

- FakeSourceAdapter: Canned payloads, delays, errors and hangs
- BlockingSourceAdapter: Synchronous adapter that blocks its thread
- FakeDashboardPort: Queued snapshots and captured selections
- FakeRenderer: Captured snapshots for assertion
"""

from .dashboard import FakeDashboardPort
from .renderer import FakeRenderer
from .source import BlockingSourceAdapter, FakeSourceAdapter

__all__ = [
    "BlockingSourceAdapter",
    "FakeDashboardPort",
    "FakeRenderer",
    "FakeSourceAdapter",
]
