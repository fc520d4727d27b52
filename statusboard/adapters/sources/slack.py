"""Slack source adapter.

Lists the user's conversations and reports those with unread messages.
Slack answers most failures with HTTP 200 and ``{"ok": false}``, so the
error field is mapped onto the core taxonomy here.
"""

import asyncio
import logging
from typing import Any

import httpx

from statusboard.core.errors import (
    SourceRateLimited,
    SourceUnauthorized,
    SourceUnexpected,
)
from statusboard.core.models import FetchContext

from .base import HttpSourceAdapter
from .types import UnreadChannel

logger = logging.getLogger(__name__)

AUTH_ERRORS = frozenset(
    {"invalid_auth", "not_authed", "token_revoked", "token_expired", "account_inactive", "missing_scope"}
)


class SlackUnreadAdapter(HttpSourceAdapter):
    """Slack-backed `slack_unread` view."""

    service_name = "slack"

    def __init__(
        self,
        token: str,
        api_url: str = "https://slack.com/api",
        max_channels: int = 100,
        info_concurrency: int = 5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Slack adapter.

        Args:
            token: Slack user token. Unread counts are per user, so a bot
                token will not do.
            max_channels: Upper bound on conversations inspected.
            info_concurrency: Parallel conversations.info calls.
        """
        super().__init__(api_url, max_items=max_channels, transport=transport)
        self.token = token
        self.info_concurrency = info_concurrency

    def is_configured(self) -> bool:
        return bool(self.token)

    def _get_headers(self) -> dict[str, str]:
        headers = super()._get_headers()
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def fetch(self, context: FetchContext) -> tuple[UnreadChannel, ...]:
        """Return conversations with unread messages, most unread first.

        A conversation whose info call fails on its own (for example
        ``channel_not_found``) is skipped. Auth and rate-limit failures
        fail the whole view and cancel the remaining info calls.
        """
        self._require_configured()

        channels = await self._list_conversations(context)
        semaphore = asyncio.Semaphore(self.info_concurrency)

        async def unread_for(channel: dict[str, Any]) -> UnreadChannel | None:
            try:
                async with semaphore:
                    data = await self._call(
                        "conversations.info", context, {"channel": channel["id"]}
                    )
            except SourceUnexpected as e:
                logger.warning(f"Skipping Slack conversation {channel['id']}: {e}")
                return None
            info = data.get("channel") or {}
            count = int(info.get("unread_count_display") or info.get("unread_count") or 0)
            if count <= 0:
                return None
            is_direct = bool(channel.get("is_im"))
            return UnreadChannel(
                id=channel["id"],
                name=channel.get("name") or channel.get("user") or channel["id"],
                unread_count=count,
                is_direct=is_direct,
            )

        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(unread_for(c)) for c in channels]
        except ExceptionGroup as eg:
            # Surface the first failure so it is classified like any other
            raise eg.exceptions[0] from None

        unread = [u for u in (t.result() for t in tasks) if u is not None]
        unread.sort(key=lambda u: (-u.unread_count, u.name))
        logger.debug(f"Found {len(unread)} Slack conversations with unread messages")
        return tuple(unread)

    async def _list_conversations(self, context: FetchContext) -> list[dict[str, Any]]:
        channels: list[dict[str, Any]] = []
        cursor = ""
        while len(channels) < self.max_items:
            params = {
                "types": "public_channel,private_channel,mpim,im",
                "exclude_archived": "true",
                "limit": min(200, self.max_items - len(channels)),
            }
            if cursor:
                params["cursor"] = cursor
            data = await self._call("users.conversations", context, params)
            channels.extend(data.get("channels", []))
            cursor = (data.get("response_metadata") or {}).get("next_cursor", "")
            if not cursor:
                break
        return channels[: self.max_items]

    async def _call(
        self, method: str, context: FetchContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        data = await self._get_json(f"/{method}", context, params=params)
        if not isinstance(data, dict):
            raise SourceUnexpected(f"slack: unexpected {method} payload")
        if data.get("ok"):
            return data

        error = data.get("error", "unknown_error")
        logger.error(f"Slack {method} failed: {error}")
        if error in AUTH_ERRORS:
            raise SourceUnauthorized(f"slack: {error}")
        if error == "ratelimited":
            raise SourceRateLimited("slack: ratelimited")
        raise SourceUnexpected(f"slack: {error}")
