"""Sentry source adapter.

Fetches unresolved issues for an organization, following Sentry's
``Link`` header cursor pagination.
"""

import logging
from typing import Any

import httpx

from statusboard.core.models import FetchContext

from .base import HttpSourceAdapter
from .types import SentryIssue, parse_timestamp

logger = logging.getLogger(__name__)


class SentryIssuesAdapter(HttpSourceAdapter):
    """Sentry-backed `sentry_issues` view."""

    service_name = "sentry"

    def __init__(
        self,
        token: str,
        organization: str,
        api_url: str = "https://sentry.io",
        query: str = "is:unresolved",
        max_items: int = 25,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_url, max_items=max_items, transport=transport)
        self.token = token
        self.organization = organization
        self.query = query

    def is_configured(self) -> bool:
        return bool(self.token and self.organization)

    def _get_headers(self) -> dict[str, str]:
        headers = super()._get_headers()
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def fetch(self, context: FetchContext) -> tuple[SentryIssue, ...]:
        """Return unresolved issues, most recently seen first."""
        self._require_configured()

        issues: list[SentryIssue] = []
        cursor: str | None = None
        path = f"/api/0/organizations/{self.organization}/issues/"
        while len(issues) < self.max_items:
            params: dict[str, Any] = {
                "query": self.query,
                "sort": "date",
                "limit": min(100, self.max_items - len(issues)),
            }
            if cursor:
                params["cursor"] = cursor

            response = await self._request("GET", path, context, params=params)
            data = self._decode(response, self.service_name)
            issues.extend(self._parse_issue(item) for item in data or [])

            cursor = self._next_cursor(response)
            if cursor is None:
                break

        logger.debug(f"Fetched {len(issues)} Sentry issues")
        return tuple(issues[: self.max_items])

    @staticmethod
    def _next_cursor(response: httpx.Response) -> str | None:
        link = response.links.get("next")
        if not link or link.get("results") != "true":
            return None
        return link.get("cursor")

    @staticmethod
    def _parse_issue(item: dict[str, Any]) -> SentryIssue:
        try:
            count = int(item.get("count") or 0)
        except (TypeError, ValueError):
            count = 0
        return SentryIssue(
            id=str(item.get("id", "")),
            short_id=item.get("shortId", ""),
            title=item.get("title", ""),
            level=item.get("level", ""),
            project=(item.get("project") or {}).get("slug", ""),
            count=count,
            user_count=int(item.get("userCount") or 0),
            url=item.get("permalink", ""),
            last_seen=parse_timestamp(item.get("lastSeen")),
        )
