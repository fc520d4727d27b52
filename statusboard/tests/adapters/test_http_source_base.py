"""Tests for the shared HTTP source adapter behavior.

Uses JiraSourceAdapter as the concrete adapter; the status and transport
mapping lives in the base class.
"""

import time
from email.utils import format_datetime
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from statusboard.adapters.sources.base import HttpSourceAdapter, parse_retry_after
from statusboard.adapters.sources.jira import JiraSourceAdapter
from statusboard.core.errors import (
    SourceNetworkError,
    SourceRateLimited,
    SourceTimeout,
    SourceUnauthorized,
    SourceUnexpected,
)
from statusboard.core.models import FetchContext, ViewId


def _context(seconds: float = 5.0) -> FetchContext:
    return FetchContext(view=ViewId("jira"), deadline=time.monotonic() + seconds)


def _adapter(handler) -> JiraSourceAdapter:
    return JiraSourceAdapter(
        base_url="https://example.atlassian.net",
        email="me@example.com",
        api_token="token",
        jql="assignee = currentUser()",
        transport=httpx.MockTransport(handler),
    )


class TestStatusMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_failures(self, status: int) -> None:
        adapter = _adapter(lambda request: httpx.Response(status))
        with pytest.raises(SourceUnauthorized):
            await adapter.fetch(_context())
        await adapter.close()

    @pytest.mark.asyncio
    async def test_rate_limited_with_retry_after(self) -> None:
        adapter = _adapter(
            lambda request: httpx.Response(429, headers={"Retry-After": "30"})
        )
        with pytest.raises(SourceRateLimited) as exc_info:
            await adapter.fetch(_context())
        assert exc_info.value.retry_after == 30.0
        await adapter.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [404, 500, 503])
    async def test_other_statuses_are_unexpected(self, status: int) -> None:
        adapter = _adapter(lambda request: httpx.Response(status))
        with pytest.raises(SourceUnexpected):
            await adapter.fetch(_context())
        await adapter.close()

    @pytest.mark.asyncio
    async def test_malformed_json(self) -> None:
        adapter = _adapter(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(SourceUnexpected, match="malformed JSON"):
            await adapter.fetch(_context())
        await adapter.close()


class TestTransportErrors:
    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        adapter = _adapter(handler)
        with pytest.raises(SourceTimeout):
            await adapter.fetch(_context())
        await adapter.close()

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        adapter = _adapter(handler)
        with pytest.raises(SourceNetworkError):
            await adapter.fetch(_context())
        await adapter.close()

    @pytest.mark.asyncio
    async def test_no_request_after_deadline(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"issues": [], "isLast": True})

        adapter = _adapter(handler)
        with pytest.raises(SourceTimeout):
            await adapter.fetch(_context(seconds=-1))
        assert calls == []
        await adapter.close()

    @pytest.mark.asyncio
    async def test_no_request_after_cancellation(self) -> None:
        adapter = _adapter(lambda request: httpx.Response(200, json={"issues": []}))
        context = _context()
        context.cancelled.set()
        with pytest.raises(SourceTimeout):
            await adapter.fetch(context)
        await adapter.close()


class TestConfiguration:
    @pytest.mark.asyncio
    async def test_missing_credentials_is_unauthorized(self) -> None:
        adapter = JiraSourceAdapter(base_url="", email="", api_token="", jql="x")
        assert not adapter.is_configured()
        with pytest.raises(SourceUnauthorized, match="not configured"):
            await adapter.fetch(_context())

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        adapter = _adapter(lambda request: httpx.Response(200, json={"issues": []}))
        async with adapter:
            await adapter.fetch(_context())
        await adapter.close()
        assert adapter._client is None

    def test_max_items_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            JiraSourceAdapter(
                base_url="https://x", email="a", api_token="b", jql="c", max_items=0
            )

    def test_base_adapter_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            HttpSourceAdapter("https://example.com")


class TestParseRetryAfter:
    def test_seconds(self) -> None:
        assert parse_retry_after("120") == 120.0

    def test_http_date(self) -> None:
        when = datetime.now(UTC) + timedelta(seconds=60)
        value = parse_retry_after(format_datetime(when, usegmt=True))
        assert value is not None
        assert 50 <= value <= 61

    @pytest.mark.parametrize("value", [None, "", "soon"])
    def test_unparseable(self, value: str | None) -> None:
        assert parse_retry_after(value) is None

    def test_past_date_clamps_to_zero(self) -> None:
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0
