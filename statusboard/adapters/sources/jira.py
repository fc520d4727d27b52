"""Jira source adapter.

Fetches the issues assigned to the current user via the Jira Cloud
JQL search API and normalizes them into Ticket payloads.
"""

import base64
import logging
from typing import Any

import httpx

from statusboard.core.models import FetchContext

from .base import HttpSourceAdapter
from .types import Ticket, parse_timestamp

logger = logging.getLogger(__name__)

SEARCH_FIELDS = "summary,status,priority,updated"


class JiraSourceAdapter(HttpSourceAdapter):
    """Jira-backed `jira` view."""

    service_name = "jira"

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        jql: str,
        max_items: int = 50,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Jira adapter.

        Args:
            base_url: Jira Cloud site URL (e.g., https://example.atlassian.net)
            email: Account email used for basic authentication
            api_token: Jira API token
            jql: Search query for the view
        """
        super().__init__(base_url, max_items=max_items, transport=transport)
        self.email = email
        self.api_token = api_token
        self.jql = jql

    def is_configured(self) -> bool:
        return bool(self.api_url and self.email and self.api_token)

    def _get_headers(self) -> dict[str, str]:
        headers = super()._get_headers()
        if self.email and self.api_token:
            raw = f"{self.email}:{self.api_token}".encode()
            headers["Authorization"] = f"Basic {base64.b64encode(raw).decode()}"
        return headers

    async def fetch(self, context: FetchContext) -> tuple[Ticket, ...]:
        """Return tickets matching the configured JQL, newest first."""
        self._require_configured()

        tickets: list[Ticket] = []
        next_token: str | None = None
        while len(tickets) < self.max_items:
            params: dict[str, Any] = {
                "jql": self.jql,
                "fields": SEARCH_FIELDS,
                "maxResults": min(50, self.max_items - len(tickets)),
            }
            if next_token:
                params["nextPageToken"] = next_token

            data = await self._get_json("/rest/api/3/search/jql", context, params=params)
            for issue in data.get("issues", []):
                tickets.append(self._parse_issue(issue))

            next_token = data.get("nextPageToken")
            if data.get("isLast", True) or not next_token:
                break

        logger.debug(f"Fetched {len(tickets)} Jira tickets")
        return tuple(tickets[: self.max_items])

    def _parse_issue(self, issue: dict[str, Any]) -> Ticket:
        fields = issue.get("fields") or {}
        key = issue.get("key", "")
        return Ticket(
            key=key,
            summary=fields.get("summary", ""),
            status=(fields.get("status") or {}).get("name", ""),
            priority=(fields.get("priority") or {}).get("name"),
            url=f"{self.api_url}/browse/{key}",
            updated=parse_timestamp(fields.get("updated")),
        )
