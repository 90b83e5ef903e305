"""
Remote retrieval of plugin scripts and manifests
"""

import asyncio
import logging
import uuid
from typing import Any, Optional

import httpx

from .errors import FetchFailed

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 30.0


def add_random_hash(url: str) -> str:
    """Append a random query parameter so caches never serve a stale script"""
    return str(httpx.URL(url).copy_add_param("_", uuid.uuid4().hex[:8]))


class PluginFetcher:
    """
    Fetches plugin sources over HTTP.

    Every fetch is bounded by timeout seconds in total, so a hung server
    cannot stall callers indefinitely.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def _get(self, url: str) -> httpx.Response:
        client = await self._get_client()
        target = add_random_hash(url)

        try:
            response = await asyncio.wait_for(client.get(target), timeout=self.timeout)
            response.raise_for_status()
            return response
        except asyncio.TimeoutError as e:
            raise FetchFailed(f"Timed out fetching {url}") from e
        except httpx.HTTPStatusError as e:
            raise FetchFailed(f"HTTP {e.response.status_code} fetching {url}") from e
        except httpx.HTTPError as e:
            raise FetchFailed(f"Request error fetching {url}: {e}") from e

    async def fetch_text(self, url: str) -> str:
        """Fetch a plugin script"""
        response = await self._get(url)
        text = response.text
        if not text or not text.strip():
            raise FetchFailed(f"Empty response from {url}")
        logger.debug(f"Fetched {len(text)} characters from {url}")
        return text

    async def fetch_json(self, url: str) -> Any:
        """Fetch a JSON document such as a plugin manifest"""
        response = await self._get(url)
        try:
            return response.json()
        except ValueError as e:
            raise FetchFailed(f"Invalid JSON from {url}: {e}") from e

    async def close(self):
        """Close the HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None
