"""PagerDuty source adapters.

- oncall: who is on call right now, per escalation policy
- pagerduty_alerts: incidents that are triggered or acknowledged
"""

import logging
from typing import Any

import httpx

from statusboard.core.models import FetchContext

from .base import HttpSourceAdapter
from .types import Alert, OncallEntry, parse_timestamp

logger = logging.getLogger(__name__)

ALERT_STATUSES = ("triggered", "acknowledged")


class _PagerDutySourceAdapter(HttpSourceAdapter):
    service_name = "pagerduty"

    def __init__(
        self,
        api_token: str,
        api_url: str = "https://api.pagerduty.com",
        max_items: int = 25,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_url, max_items=max_items, transport=transport)
        self.api_token = api_token

    def is_configured(self) -> bool:
        return bool(self.api_token)

    def _get_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.pagerduty+json;version=2"}
        if self.api_token:
            headers["Authorization"] = f"Token token={self.api_token}"
        return headers

    async def _paginate(
        self,
        path: str,
        key: str,
        context: FetchContext,
        params: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Collect items across PagerDuty's offset pages, up to max_items."""
        items: list[dict[str, Any]] = []
        offset = 0
        while len(items) < self.max_items:
            page_params = dict(params)
            page_params["limit"] = min(100, self.max_items - len(items))
            page_params["offset"] = offset
            data = await self._get_json(path, context, params=page_params)
            page = data.get(key, [])
            items.extend(page)
            if not data.get("more") or not page:
                break
            offset += len(page)
        return items[: self.max_items]


def _display_name(ref: dict[str, Any] | None) -> str:
    if not ref:
        return ""
    return ref.get("name") or ref.get("summary") or ref.get("id", "")


class PagerDutyOncallAdapter(_PagerDutySourceAdapter):
    """PagerDuty-backed `oncall` view."""

    async def fetch(self, context: FetchContext) -> tuple[OncallEntry, ...]:
        """Return current on-call entries ordered by policy then level."""
        self._require_configured()

        raw = await self._paginate("/oncalls", "oncalls", context, {"earliest": "true"})
        entries = [
            OncallEntry(
                user=_display_name(item.get("user")),
                escalation_policy=_display_name(item.get("escalation_policy")),
                escalation_level=int(item.get("escalation_level") or 0),
                schedule=_display_name(item.get("schedule")) or None,
                start=parse_timestamp(item.get("start")),
                end=parse_timestamp(item.get("end")),
            )
            for item in raw
        ]
        entries.sort(key=lambda e: (e.escalation_policy, e.escalation_level))
        logger.debug(f"Fetched {len(entries)} on-call entries")
        return tuple(entries)


class PagerDutyAlertsAdapter(_PagerDutySourceAdapter):
    """PagerDuty-backed `pagerduty_alerts` view."""

    async def fetch(self, context: FetchContext) -> tuple[Alert, ...]:
        """Return open incidents, newest first."""
        self._require_configured()

        raw = await self._paginate(
            "/incidents",
            "incidents",
            context,
            {"statuses[]": list(ALERT_STATUSES), "sort_by": "created_at:desc"},
        )
        alerts = tuple(
            Alert(
                id=item.get("id", ""),
                number=int(item.get("incident_number") or 0),
                title=item.get("title", ""),
                status=item.get("status", ""),
                urgency=item.get("urgency", ""),
                service=_display_name(item.get("service")),
                url=item.get("html_url", ""),
                created_at=parse_timestamp(item.get("created_at")),
            )
            for item in raw
        )
        logger.debug(f"Fetched {len(alerts)} PagerDuty alerts")
        return alerts
