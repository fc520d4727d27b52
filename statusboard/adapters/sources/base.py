"""Shared HTTP plumbing for source adapters.

Every concrete source adapter talks JSON over HTTPS with httpx. This base
owns the lazily created client, clips each request's timeout to the
view's remaining time, and maps transport and status failures into the
core's SourceError taxonomy.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from statusboard.core.errors import (
    SourceNetworkError,
    SourceRateLimited,
    SourceTimeout,
    SourceUnauthorized,
    SourceUnexpected,
)
from statusboard.core.models import FetchContext, ViewData

logger = logging.getLogger(__name__)


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header (delta-seconds or HTTP-date) into seconds."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class HttpSourceAdapter(ABC):
    """Base for source adapters backed by an HTTP JSON API.

    Subclasses implement ``fetch`` using ``_get_json`` / ``_post_json`` and
    override ``_get_headers`` and ``is_configured``.
    """

    service_name = "http"

    def __init__(
        self,
        api_url: str,
        max_items: int = 50,
        request_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the adapter.

        Args:
            api_url: Base URL of the service API.
            max_items: Upper bound on items collected across pages.
            request_timeout: Ceiling for a single request, in seconds. The
                view's remaining time is used when it is shorter.
            transport: Optional httpx transport (used by tests).
        """
        if max_items <= 0:
            raise ValueError(f"max_items must be positive, got {max_items}")
        self.api_url = api_url.rstrip("/")
        self.max_items = max_items
        self.request_timeout = request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_headers(self) -> dict[str, str]:
        """Build request headers."""
        return {"Accept": "application/json"}

    def is_configured(self) -> bool:
        """Whether credentials for this service are present."""
        return True

    @abstractmethod
    async def fetch(self, context: FetchContext) -> ViewData:
        """Fetch this view's payload within ``context``'s deadline.

        Raises:
            SourceError: A classified failure (unauthorized, rate limited,
                timeout, network, unexpected).
        """

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                headers=self._get_headers(),
                timeout=self.request_timeout,
                transport=self._transport,
            )
        return self._client

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _require_configured(self) -> None:
        if not self.is_configured():
            raise SourceUnauthorized(f"{self.service_name} credentials are not configured")

    async def _request(
        self,
        method: str,
        path: str,
        context: FetchContext,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request bounded by the view's remaining time."""
        remaining = context.remaining()
        if remaining <= 0 or context.is_cancelled:
            raise SourceTimeout(f"{self.service_name}: no time left for {path}")

        client = await self._get_client()
        try:
            response = await client.request(
                method,
                path,
                timeout=min(self.request_timeout, remaining),
                **kwargs,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Timed out calling {self.service_name} {path}: {e}")
            raise SourceTimeout(f"{self.service_name}: request timed out") from e
        except httpx.TransportError as e:
            logger.error(f"Failed to reach {self.service_name} {path}: {e}")
            raise SourceNetworkError(f"{self.service_name}: {e}") from e

        self._raise_for_status(response, path)
        return response

    def _raise_for_status(self, response: httpx.Response, path: str) -> None:
        status = response.status_code
        if status < 400:
            return

        if status in (401, 403):
            logger.error(f"{self.service_name} rejected credentials ({status}) for {path}")
            raise SourceUnauthorized(f"{self.service_name}: HTTP {status}")

        if status == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            logger.error(
                f"{self.service_name} rate limited {path}, retry after {retry_after}s"
            )
            raise SourceRateLimited(f"{self.service_name}: HTTP 429", retry_after=retry_after)

        logger.error(f"{self.service_name} returned HTTP {status} for {path}")
        raise SourceUnexpected(f"{self.service_name}: HTTP {status}")

    @staticmethod
    def _decode(response: httpx.Response, service_name: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{service_name} returned malformed JSON: {e}")
            raise SourceUnexpected(f"{service_name}: malformed JSON response") from e

    async def _get_json(self, path: str, context: FetchContext, **kwargs: Any) -> Any:
        response = await self._request("GET", path, context, **kwargs)
        return self._decode(response, self.service_name)

    async def _post_json(self, path: str, context: FetchContext, **kwargs: Any) -> Any:
        response = await self._request("POST", path, context, **kwargs)
        return self._decode(response, self.service_name)
