"""New Relic source adapter.

Queries NerdGraph for open AI issues on one account. GraphQL reports
most failures inside a 200 response, so the ``errors`` array is checked
explicitly.
"""

import logging
from typing import Any

import httpx

from statusboard.core.errors import SourceUnauthorized, SourceUnexpected
from statusboard.core.models import FetchContext

from .base import HttpSourceAdapter
from .types import NewRelicIncident, parse_timestamp

logger = logging.getLogger(__name__)

ISSUES_QUERY = """
query OpenIssues($accountId: Int!, $cursor: String) {
  actor {
    account(id: $accountId) {
      aiIssues {
        issues(filter: {states: [ACTIVATED, CREATED]}, cursor: $cursor) {
          issues {
            issueId
            title
            priority
            state
            entityNames
            createdAt
          }
          nextCursor
        }
      }
    }
  }
}
"""


class NewRelicIncidentsAdapter(HttpSourceAdapter):
    """New Relic-backed `newrelic_incidents` view."""

    service_name = "newrelic"

    def __init__(
        self,
        api_key: str,
        account_id: str,
        api_url: str = "https://api.newrelic.com",
        max_items: int = 25,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_url, max_items=max_items, transport=transport)
        self.api_key = api_key
        self.account_id = account_id

    def is_configured(self) -> bool:
        return bool(self.api_key and self.account_id.isdigit())

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["API-Key"] = self.api_key
        return headers

    async def fetch(self, context: FetchContext) -> tuple[NewRelicIncident, ...]:
        """Return open issues on the configured account."""
        self._require_configured()

        incidents: list[NewRelicIncident] = []
        cursor: str | None = None
        while len(incidents) < self.max_items:
            payload = await self._post_json(
                "/graphql",
                context,
                json={
                    "query": ISSUES_QUERY,
                    "variables": {"accountId": int(self.account_id), "cursor": cursor},
                },
            )
            page = self._issues_page(payload)
            incidents.extend(self._parse_issue(item) for item in page.get("issues") or [])
            cursor = page.get("nextCursor")
            if not cursor:
                break

        logger.debug(f"Fetched {len(incidents)} New Relic incidents")
        return tuple(incidents[: self.max_items])

    def _issues_page(self, payload: Any) -> dict[str, Any]:
        if not isinstance(payload, dict):
            raise SourceUnexpected("newrelic: unexpected GraphQL payload")

        errors = payload.get("errors") or []
        if errors:
            messages = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
            )
            logger.error(f"New Relic GraphQL errors: {messages}")
            codes = {
                (e.get("extensions") or {}).get("errorClass") for e in errors if isinstance(e, dict)
            }
            if "UNAUTHORIZED" in codes or "FORBIDDEN" in codes:
                raise SourceUnauthorized("newrelic: access denied")
            raise SourceUnexpected("newrelic: GraphQL query failed")

        try:
            return payload["data"]["actor"]["account"]["aiIssues"]["issues"] or {}
        except (KeyError, TypeError) as e:
            raise SourceUnexpected("newrelic: GraphQL response missing issues") from e

    @staticmethod
    def _parse_issue(item: dict[str, Any]) -> NewRelicIncident:
        title = item.get("title") or []
        if isinstance(title, list):
            title = " / ".join(str(t) for t in title)
        return NewRelicIncident(
            id=item.get("issueId", ""),
            title=title,
            priority=item.get("priority", ""),
            state=item.get("state", ""),
            entities=tuple(item.get("entityNames") or ()),
            created_at=parse_timestamp(item.get("createdAt")),
        )
