"""
Request cache with in-flight deduplication and bounded retry.

All lookups run on one event loop. ``fetch`` checks for an in-flight task,
then for fresh data, then registers a new task without awaiting in between,
so concurrent callers for one key always end up sharing a single fetch.
"""

import asyncio
import math
import time
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from .config import CacheSettings, get_settings
from .errors import NotFoundAbort, ParseError, RequestCacheError, TransientFetchError
from .logging import configure_logging, get_logger
from .metrics import CacheMetrics
from .retry import RetryConfig, retry
from .transport import HttpTransport, Transport


class FetchOptions(BaseModel):
    """Per-call fetch options."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_age: float = Field(default=math.inf, ge=0)
    retries: int = Field(default=1, ge=0)
    force: bool = False


@dataclass(frozen=True)
class CacheEntry:
    """Snapshot of the state kept for one cache key.

    Entries are immutable; the cache swaps in a new one on every change, so
    observers reading ``RequestCache.entries`` cannot alter cache state.
    """

    data: Any = None
    timestamp: Optional[float] = None
    in_flight: Optional["asyncio.Task[Any]"] = None

    @property
    def has_data(self) -> bool:
        # data may legitimately be None (a JSON null), timestamp never is once set
        return self.timestamp is not None

    @property
    def is_loading(self) -> bool:
        return self.in_flight is not None

    def age(self, now: float) -> Optional[float]:
        if self.timestamp is None:
            return None
        return now - self.timestamp


class RequestCache:
    """Get-or-fetch cache keyed by resource URL."""

    def __init__(self,
                 transport: Transport,
                 *,
                 clock: Callable[[], float] = time.time,
                 retry_config: Optional[RetryConfig] = None,
                 default_options: Optional[FetchOptions] = None,
                 metrics: Optional[CacheMetrics] = None):
        self._transport = transport
        self._clock = clock
        self.retry_config = retry_config or RetryConfig()
        self.default_options = default_options or FetchOptions()
        self.metrics = metrics or CacheMetrics()
        self.logger = get_logger("request_cache.cache")

        self._entries: Dict[str, CacheEntry] = {}
        self._pending: Set["asyncio.Task[Any]"] = set()

    @classmethod
    def from_settings(cls,
                      settings: Optional[CacheSettings] = None,
                      transport: Optional[Transport] = None,
                      setup_logging: bool = False,
                      **kwargs) -> "RequestCache":
        """Build a cache wired from :class:`CacheSettings`.

        With ``setup_logging`` structlog is configured at ``settings.log_level``.
        """
        settings = settings or get_settings()
        if setup_logging:
            configure_logging(log_level=settings.log_level)
        retry_config = RetryConfig(
            max_attempts=settings.default_retries + 1,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
            exponential_base=settings.retry_exponential_base,
            jitter=settings.retry_jitter,
            backoff_strategy=settings.retry_backoff_strategy
        )
        default_options = FetchOptions(
            max_age=settings.default_max_age,
            retries=settings.default_retries
        )
        return cls(
            transport or HttpTransport.from_settings(settings),
            retry_config=retry_config,
            default_options=default_options,
            **kwargs
        )

    @property
    def entries(self) -> Mapping[str, CacheEntry]:
        """Read-only live view of every key the cache has seen.

        Values are immutable snapshots; look a key up again to see later changes.
        """
        return MappingProxyType(self._entries)

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def peek(self, key: str) -> Any:
        """Cached data for ``key`` regardless of age, or None."""
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def in_flight(self) -> List[str]:
        """Keys with a fetch currently in progress."""
        return [key for key, entry in self._entries.items() if entry.in_flight is not None]

    async def fetch(self, key: str, options: Optional[FetchOptions] = None, **overrides) -> Any:
        """Return data for ``key``, from cache when fresh, otherwise fetched.

        Callers arriving while a fetch for ``key`` is running share its
        result unless ``force`` is set. Accepts a :class:`FetchOptions`
        and/or ``max_age``, ``retries`` and ``force`` keyword overrides.
        """
        options = self._resolve_options(options, overrides)

        # No await until the task is registered on the entry.
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = CacheEntry()

        if not options.force and entry.in_flight is not None:
            self.metrics.record_lookup("coalesced")
            self.logger.debug("Joining in-flight fetch", key=key)
            task = entry.in_flight
        elif not options.force and entry.has_data and self._clock() - entry.timestamp <= options.max_age:
            self.metrics.record_lookup("hit")
            self.logger.debug("Cache hit", key=key, age=entry.age(self._clock()))
            return entry.data
        else:
            self.metrics.record_lookup("miss")
            task = self._start_fetch(key, entry, options)

        # Shielded so one caller giving up never cancels the shared fetch.
        return await asyncio.shield(task)

    def invalidate(self, key: str) -> bool:
        """Drop cached data for ``key``; a running fetch is left alone."""
        entry = self._entries.get(key)
        if entry is None or not entry.has_data:
            return False

        self._entries[key] = replace(entry, data=None, timestamp=None)
        self.logger.info("Cache entry invalidated", key=key)
        return True

    def clear(self):
        """Drop all cached data. Entries with a fetch in progress are kept."""
        for key in list(self._entries):
            entry = self._entries[key]
            if entry.in_flight is None:
                del self._entries[key]
            else:
                self._entries[key] = replace(entry, data=None, timestamp=None)
        self.logger.info("Cache cleared", remaining=len(self._entries))

    async def wait_idle(self):
        """Wait until no fetch is in progress.

        Fetches started while waiting are waited for too. Failures are not
        raised here; the callers of those fetches already receive them.
        """
        while self._pending:
            await asyncio.wait(set(self._pending))

    def _resolve_options(self, options: Optional[FetchOptions], overrides: Dict[str, Any]) -> FetchOptions:
        if options is None:
            options = self.default_options
        if overrides:
            options = FetchOptions(**{**options.model_dump(), **overrides})
        return options

    def _start_fetch(self, key: str, entry: CacheEntry, options: FetchOptions) -> "asyncio.Task[Any]":
        config = self.retry_config.with_attempts(options.retries + 1)
        task = asyncio.create_task(self._run_fetch(key, config))
        self._entries[key] = replace(entry, in_flight=task)
        self._pending.add(task)
        self.metrics.in_flight.set(len(self._pending))
        self.logger.info(
            "Fetch started",
            key=key,
            force=options.force,
            max_attempts=config.max_attempts
        )
        return task

    async def _run_fetch(self, key: str, config: RetryConfig) -> Any:
        task = asyncio.current_task()
        started = self._clock()
        changes: Dict[str, Any] = {}
        try:
            data = await retry(lambda: self._fetch_once(key), config, name="fetch")
            completed = self._clock()
            current = self._entries.get(key)
            superseded = current is not None and current.in_flight is not task
            if superseded and current.has_data and current.timestamp > started:
                # A fetch that replaced this one already stored newer data.
                self.logger.info("Discarding superseded fetch result", key=key)
            else:
                changes.update(data=data, timestamp=completed)
            self.logger.info("Fetch succeeded", key=key, duration=completed - started)
            return data
        except Exception as exc:
            self.metrics.record_failure(exc)
            self.logger.warning(
                "Fetch failed",
                key=key,
                error=str(exc),
                error_type=type(exc).__name__
            )
            raise
        finally:
            # A forced fetch may have replaced this task on the entry.
            entry = self._entries.get(key) or CacheEntry()
            if entry.in_flight is task:
                changes["in_flight"] = None
            if changes:
                self._entries[key] = replace(entry, **changes)
            self._pending.discard(task)
            self.metrics.in_flight.set(len(self._pending))

    async def _fetch_once(self, key: str) -> Any:
        """One attempt: transport call, status check, body parse."""
        try:
            response = await self._transport(key)
        except RequestCacheError:
            raise
        except Exception as exc:
            raise TransientFetchError(
                key,
                str(exc) or type(exc).__name__,
                {"error_type": type(exc).__name__}
            ) from exc

        if response.status_code == 404:
            raise NotFoundAbort(key)

        if not 200 <= response.status_code < 300:
            raise TransientFetchError(
                key,
                f"Unexpected status {response.status_code}",
                {"status_code": response.status_code}
            )

        try:
            return response.json()
        except Exception as exc:
            raise ParseError(key, details={"error": str(exc)}) from exc


_default_cache: Optional[RequestCache] = None


def get_default_cache() -> RequestCache:
    """Process-wide cache, built from settings on first use.

    Building it also configures logging at the configured ``log_level``.
    """
    global _default_cache
    if _default_cache is None:
        _default_cache = RequestCache.from_settings(setup_logging=True)
    return _default_cache


def set_default_cache(cache: RequestCache):
    global _default_cache
    _default_cache = cache


def reset_default_cache():
    global _default_cache
    _default_cache = None


async def fetch(key: str, options: Optional[FetchOptions] = None, **overrides) -> Any:
    """Fetch through the process-wide default cache."""
    return await get_default_cache().fetch(key, options, **overrides)
