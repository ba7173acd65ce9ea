"""
Client-side request cache with in-flight deduplication and bounded retry.

Modules:

- cache: RequestCache, get-or-fetch with coalescing and freshness checks
- retry: retry loop with backoff and an abort signal
- transport: httpx-based default transport
- errors: error taxonomy (abort vs. retryable failures)
- config: settings via pydantic-settings
- logging: structured logging via structlog
- metrics: Prometheus counters per cache instance

Build one ``RequestCache`` per application and pass it to whoever needs it;
``get_default_cache()`` exists for code that cannot be handed an instance.
"""

from .cache import (
    CacheEntry,
    FetchOptions,
    RequestCache,
    fetch,
    get_default_cache,
    reset_default_cache,
    set_default_cache,
)
from .config import CacheSettings, get_settings
from .errors import (
    AbortError,
    NotFoundAbort,
    ParseError,
    RequestCacheError,
    TransientFetchError,
)
from .retry import RetryConfig, retry
from .transport import HttpTransport

__all__ = [
    "AbortError",
    "CacheEntry",
    "CacheSettings",
    "FetchOptions",
    "HttpTransport",
    "NotFoundAbort",
    "ParseError",
    "RequestCache",
    "RequestCacheError",
    "RetryConfig",
    "TransientFetchError",
    "fetch",
    "get_default_cache",
    "get_settings",
    "reset_default_cache",
    "retry",
    "set_default_cache",
]
