"""
HTTP transport used by the request cache.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

import httpx

from .config import CacheSettings
from .logging import get_logger


class Response(Protocol):
    """What the cache needs from a transport response."""

    status_code: int

    def json(self) -> Any:
        ...


Transport = Callable[[str], Awaitable[Response]]


class HttpTransport:
    """Issue ``GET`` requests for cache keys with httpx."""

    def __init__(self,
                 base_url: Optional[str] = None,
                 timeout: float = 10.0,
                 headers: Optional[Dict[str, str]] = None):
        self.base_url = base_url.rstrip('/') if base_url else None
        self.timeout = timeout
        self.headers = dict(headers or {})
        self.logger = get_logger("request_cache.transport")

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> "HttpTransport":
        return cls(
            base_url=settings.base_url,
            timeout=settings.transport_timeout,
            headers=settings.default_headers
        )

    def resolve(self, key: str) -> str:
        """Turn a cache key into an absolute URL."""
        if self.base_url and not key.startswith(("http://", "https://")):
            return f"{self.base_url}/{key.lstrip('/')}"
        return key

    async def __call__(self, key: str) -> httpx.Response:
        url = self.resolve(key)
        async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
            response = await client.get(url)

        self.logger.debug("Transport response", url=url, status_code=response.status_code)
        return response
