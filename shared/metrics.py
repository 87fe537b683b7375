"""
Shared metrics configuration for the Catalog Cache-Aside Service.

Every ``MetricsRecorder`` owns its own ``CollectorRegistry`` so services and
tests never share counter state through a module-level default registry.
"""

from typing import Callable, Dict, Iterator, Optional, Set, Tuple
import threading
import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from prometheus_client.metrics_core import Metric


DURATION_BUCKETS_MS = (
    0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 25, 50, 100,
)

# Counters zeroed by reset_counters(); traffic history is left intact.
CACHE_COUNTERS = ("cache_hits_total", "cache_misses_total", "db_reads_total")

EndTimer = Callable[[int], None]


class _SortedRegistryView:
    """Collector view yielding families by name and samples by label set."""

    def __init__(self, registry: CollectorRegistry):
        self._registry = registry

    def collect(self) -> Iterator[Metric]:
        for family in sorted(self._registry.collect(), key=lambda metric: metric.name):
            ordered = Metric(family.name, family.documentation, family.type, family.unit)
            # Stable sort keeps histogram buckets and _count/_sum in place.
            indexed = sorted(
                enumerate(family.samples),
                key=lambda item: (_label_key(item[1].labels), item[0]),
            )
            ordered.samples = [sample for _, sample in indexed]
            yield ordered


def _label_key(labels: Dict[str, str]) -> Tuple[Tuple[str, str], ...]:
    return tuple(sorted((k, v) for k, v in labels.items() if k != "le"))


class MetricsRecorder:
    """Hit/miss/backing-read counters and request duration histograms."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: Optional[CollectorRegistry] = None, include_runtime: bool = False):
        self.registry = registry if registry is not None else CollectorRegistry()
        self._lock = threading.Lock()
        self._routes: Dict[str, Set[str]] = {name: set() for name in CACHE_COUNTERS}
        self._setup_metrics()

        if include_runtime:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

    def _setup_metrics(self):
        """Set up the request and cache-effectiveness metrics."""
        self.http_request_duration = Histogram(
            "http_request_duration_ms",
            "HTTP request latency (ms)",
            ["method", "route", "status"],
            buckets=DURATION_BUCKETS_MS,
            registry=self.registry
        )

        self.http_requests = Counter(
            "http_requests_total",
            "HTTP requests total",
            ["method", "route", "status"],
            registry=self.registry
        )

        self._counters: Dict[str, Counter] = {
            "cache_hits_total": Counter(
                "cache_hits_total",
                "Cache hits",
                ["route"],
                registry=self.registry
            ),
            "cache_misses_total": Counter(
                "cache_misses_total",
                "Cache misses",
                ["route"],
                registry=self.registry
            ),
            "db_reads_total": Counter(
                "db_reads_total",
                "DB reads",
                ["route"],
                registry=self.registry
            ),
        }

    def observe(self, method: str, route: str) -> EndTimer:
        """Start timing a request; the returned callable finalizes it once."""
        start_time = time.perf_counter()
        finished = False

        def end(status: int) -> None:
            nonlocal finished
            if finished:
                return
            finished = True
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.http_request_duration.labels(
                method=method, route=route, status=str(status)
            ).observe(duration_ms)
            self.http_requests.labels(method=method, route=route, status=str(status)).inc()

        return end

    def inc_hit(self, route: str):
        self._increment("cache_hits_total", route)

    def inc_miss(self, route: str):
        self._increment("cache_misses_total", route)

    def inc_backing_read(self, route: str):
        self._increment("db_reads_total", route)

    def _increment(self, metric_name: str, route: str):
        with self._lock:
            self._routes[metric_name].add(route)
            child = self._counters[metric_name].labels(route=route)
        child.inc()

    def reset_counters(self):
        """Zero hit, miss and backing-read series. Series are never removed."""
        with self._lock:
            for metric_name, routes in self._routes.items():
                for route in routes:
                    self._counters[metric_name].labels(route=route).reset()

    def counter_value(self, metric_name: str, route: str) -> float:
        """Current value of a cache-effectiveness counter for a route."""
        value = self.registry.get_sample_value(metric_name, {"route": route})
        return value or 0.0

    def request_count(self, method: str, route: str, status: int) -> float:
        value = self.registry.get_sample_value(
            "http_requests_total",
            {"method": method, "route": route, "status": str(status)},
        )
        return value or 0.0

    def hit_ratio(self, route: str) -> float:
        hits = self.counter_value("cache_hits_total", route)
        misses = self.counter_value("cache_misses_total", route)
        total = hits + misses
        if total == 0:
            return 0.0
        return hits / total

    def export(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(_SortedRegistryView(self.registry))


def get_metrics_recorder(include_runtime: bool = False) -> MetricsRecorder:
    """Build a fresh recorder with its own registry."""
    return MetricsRecorder(include_runtime=include_runtime)
