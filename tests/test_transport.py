"""
Unit tests for the httpx transport.
"""

import json
import pytest
import httpx
from unittest.mock import AsyncMock, patch

from request_cache import CacheSettings, HttpTransport, NotFoundAbort, RequestCache, RetryConfig


def mock_get(mock_client, status_code: int, payload=None, url: str = "http://api.test/items"):
    get = AsyncMock(
        return_value=httpx.Response(
            status_code=status_code,
            content=json.dumps(payload),
            request=httpx.Request("GET", url)
        )
    )
    mock_client.return_value.__aenter__.return_value.get = get
    return get


class TestHttpTransport:
    """Test cases for HttpTransport."""

    @pytest.fixture
    def transport(self):
        return HttpTransport("http://api.test/", timeout=5.0, headers={"Accept": "application/json"})

    def test_resolve_relative_key(self, transport):
        assert transport.resolve("items/1") == "http://api.test/items/1"
        assert transport.resolve("/items/1") == "http://api.test/items/1"

    def test_resolve_absolute_key(self, transport):
        assert transport.resolve("https://other.test/x") == "https://other.test/x"

    def test_resolve_without_base_url(self):
        assert HttpTransport().resolve("http://api.test/items") == "http://api.test/items"

    def test_from_settings(self):
        settings = CacheSettings(
            base_url="http://api.test",
            transport_timeout=2.5,
            default_headers={"Authorization": "Bearer token"}
        )

        transport = HttpTransport.from_settings(settings)

        assert transport.base_url == "http://api.test"
        assert transport.timeout == 2.5
        assert transport.headers == {"Authorization": "Bearer token"}

    @pytest.mark.asyncio
    async def test_get_issued_with_client_options(self, transport):
        with patch("httpx.AsyncClient") as mock_client:
            get = mock_get(mock_client, 200, {"id": 1})

            response = await transport("items/1")

        assert response.status_code == 200
        assert response.json() == {"id": 1}
        get.assert_awaited_once_with("http://api.test/items/1")
        mock_client.assert_called_once_with(timeout=5.0, headers={"Accept": "application/json"})

    @pytest.mark.asyncio
    async def test_status_returned_unchanged(self, transport):
        with patch("httpx.AsyncClient") as mock_client:
            mock_get(mock_client, 503, {"error": "unavailable"})

            response = await transport("items/1")

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_cache_over_http_transport(self, transport):
        """404 from the HTTP layer aborts the cache fetch after one request."""
        cache = RequestCache(transport, retry_config=RetryConfig(base_delay=0.0))

        with patch("httpx.AsyncClient") as mock_client:
            get = mock_get(mock_client, 404, {"detail": "missing"})

            with pytest.raises(NotFoundAbort):
                await cache.fetch("items/404", retries=3)

        assert get.await_count == 1
