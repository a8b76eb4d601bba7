"""
Byte fetching over HTTP for the image cache.
"""

import logging
from typing import Optional

import httpx

from xtreamtv.config import NetworkConfig

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """A resource could not be downloaded."""

    def __init__(
        self,
        url: str,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        if status_code is not None:
            message = f"HTTP {status_code} fetching {url}"
        else:
            message = f"Error fetching {url}: {original_error}"
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.original_error = original_error


class HTTPFetcher:
    """
    Downloads raw bytes with a shared ``httpx.AsyncClient``.

    Instances are awaitable callables so they can be handed to
    ``ImageCache`` directly.
    """

    def __init__(
        self,
        config: Optional[NetworkConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or NetworkConfig()
        self._http_client = client
        self._owns_client = client is None

    async def __aenter__(self):
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=self.config.follow_redirects,
                headers={"User-Agent": self.config.user_agent},
            )
            self._owns_client = True
        return self._http_client

    async def fetch(self, url: str) -> bytes:
        """
        Download ``url``.

        Raises:
            FetchError: On a non-2xx status or any transport error, timeouts included.
        """
        client = await self._ensure_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(url, status_code=e.response.status_code, original_error=e) from e
        except httpx.HTTPError as e:
            raise FetchError(url, original_error=e) from e

        logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return response.content

    async def __call__(self, url: str) -> bytes:
        return await self.fetch(url)

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
        self._http_client = None
