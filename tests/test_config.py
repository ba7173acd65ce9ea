"""
Unit tests for settings and the error taxonomy.
"""

import math
import pytest
from unittest.mock import patch
from pydantic import ValidationError

from request_cache import RequestCache, get_settings
from request_cache.errors import (
    AbortError,
    NotFoundAbort,
    ParseError,
    RequestCacheError,
    TransientFetchError,
)


class TestCacheSettings:
    """Test cases for CacheSettings."""

    def test_defaults(self, monkeypatch):
        for name in ("DEFAULT_MAX_AGE", "DEFAULT_RETRIES", "BASE_URL"):
            monkeypatch.delenv(f"REQUEST_CACHE_{name}", raising=False)

        settings = get_settings()

        assert math.isinf(settings.default_max_age)
        assert settings.default_retries == 1
        assert settings.retry_backoff_strategy == "exponential"
        assert settings.base_url is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("REQUEST_CACHE_BASE_URL", "http://api.test")
        monkeypatch.setenv("REQUEST_CACHE_RETRY_BASE_DELAY", "0.25")
        monkeypatch.setenv("REQUEST_CACHE_RETRY_JITTER", "true")

        settings = get_settings()

        assert settings.base_url == "http://api.test"
        assert settings.retry_base_delay == 0.25
        assert settings.retry_jitter is True

    def test_explicit_overrides_win(self, monkeypatch):
        monkeypatch.setenv("REQUEST_CACHE_DEFAULT_RETRIES", "7")

        assert get_settings(default_retries=2).default_retries == 2

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            get_settings(default_retries=-1)

        with pytest.raises(ValidationError):
            get_settings(retry_backoff_strategy="random")

    def test_cache_from_settings(self):
        settings = get_settings(
            default_max_age=30,
            default_retries=2,
            retry_base_delay=0.5,
            retry_backoff_strategy="fixed"
        )

        with patch("request_cache.cache.configure_logging") as mock_configure:
            cache = RequestCache.from_settings(settings, transport=object())

        mock_configure.assert_not_called()

        assert cache.default_options.max_age == 30
        assert cache.default_options.retries == 2
        assert cache.default_options.force is False
        assert cache.retry_config.max_attempts == 3
        assert cache.retry_config.base_delay == 0.5
        assert cache.retry_config.backoff_strategy == "fixed"


class TestErrors:
    """Test cases for the error taxonomy."""

    def test_not_found_is_abort(self):
        error = NotFoundAbort("http://api.test/x")

        assert isinstance(error, AbortError)
        assert isinstance(error, RequestCacheError)
        assert error.message == "Not found"
        assert error.to_dict() == {
            "code": "NOT_FOUND",
            "message": "Not found",
            "details": {"key": "http://api.test/x", "status_code": 404},
        }

    def test_parse_error_is_transient(self):
        error = ParseError("http://api.test/x", details={"error": "bad json"})

        assert isinstance(error, TransientFetchError)
        assert not isinstance(error, AbortError)
        assert error.code == "PARSE_ERROR"
        assert error.details == {"key": "http://api.test/x", "error": "bad json"}

    def test_transient_error_defaults(self):
        error = TransientFetchError("http://api.test/x")

        assert error.code == "FETCH_ERROR"
        assert str(error) == "Fetch failed"
        assert error.key == "http://api.test/x"
