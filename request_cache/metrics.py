"""
Prometheus metrics for cache lookups and fetches.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge


class CacheMetrics:
    """Counters for one cache instance."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        # A private registry keeps several caches in one process from colliding.
        self.registry = registry if registry is not None else CollectorRegistry()

        self.lookups = Counter(
            "request_cache_lookups_total",
            "Cache lookups by outcome",
            ["outcome"],
            registry=self.registry
        )
        self.fetch_failures = Counter(
            "request_cache_fetch_failures_total",
            "Fetches that settled with an error",
            ["error"],
            registry=self.registry
        )
        self.in_flight = Gauge(
            "request_cache_in_flight",
            "Fetches currently in progress",
            registry=self.registry
        )

    def record_lookup(self, outcome: str):
        self.lookups.labels(outcome=outcome).inc()

    def record_failure(self, error: Exception):
        self.fetch_failures.labels(error=type(error).__name__).inc()

    def value(self, name: str, **labels) -> float:
        """Read a sample back from the registry, 0.0 if never recorded."""
        sample = self.registry.get_sample_value(name, labels or None)
        return sample or 0.0
