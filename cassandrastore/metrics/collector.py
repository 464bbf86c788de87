"""
Prometheus metrics for storage operations.

Every statement a store issues is counted per store, operation and
outcome, and its latency observed.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Optional

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest


logger = logging.getLogger(__name__)


@dataclass
class MetricConfig:
    """Configuration for metrics collection."""

    enabled: bool = True
    namespace: str = "cassandrastore"


class StoreMetrics:
    """Metrics collector for store operations."""

    def __init__(self, config: MetricConfig = None, registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics collector.

        Args:
            config: Metrics configuration
            registry: Registry to publish to; a private one by default
        """
        self.config = config or MetricConfig()
        self.registry = registry or CollectorRegistry()
        ns = self.config.namespace

        self.operations = Counter(
            f'{ns}_operations_total',
            'Total number of storage operations',
            ['store', 'operation', 'status'],
            registry=self.registry
        )

        self.latency = Histogram(
            f'{ns}_operation_duration_seconds',
            'Storage operation duration in seconds',
            ['store', 'operation'],
            buckets=[0.001, 0.002, 0.005, 0.01, 0.02, 0.05, 0.1, 0.2, 0.5, 1.0, 5.0],
            registry=self.registry
        )

        self.cache_operations = Counter(
            f'{ns}_cache_operations_total',
            'Metadata set cache lookups',
            ['set_name', 'status'],
            registry=self.registry
        )

        self.cached_entities = Gauge(
            f'{ns}_cached_entities',
            'Number of entities held by the metadata set cache',
            ['set_name'],
            registry=self.registry
        )

        logger.debug(f"Metrics collector initialized with namespace {ns}")

    def record_operation(self, store: str, operation: str, status: str, duration: float) -> None:
        """Record one storage operation."""
        if not self.config.enabled:
            return
        self.operations.labels(store=store, operation=operation, status=status).inc()
        self.latency.labels(store=store, operation=operation).observe(duration)

    def record_cache_lookup(self, set_name: str, hit: bool) -> None:
        """Record a metadata set cache lookup."""
        if not self.config.enabled:
            return
        self.cache_operations.labels(set_name=set_name, status="hit" if hit else "miss").inc()

    def set_cached_entities(self, set_name: str, count: int) -> None:
        """Set the number of cached entities for a set."""
        if not self.config.enabled:
            return
        self.cached_entities.labels(set_name=set_name).set(count)

    @contextmanager
    def timer(self, store: str, operation: str):
        """Time a block and record it; failures are counted as errors."""
        start = time.perf_counter()
        try:
            yield
        except Exception:
            self.record_operation(store, operation, "error", time.perf_counter() - start)
            raise
        self.record_operation(store, operation, "success", time.perf_counter() - start)

    def get_sample(self, name: str, labels: Dict[str, str]) -> Optional[float]:
        """Read the current value of one sample."""
        return self.registry.get_sample_value(name, labels)

    def export_prometheus_metrics(self) -> str:
        """Export metrics in Prometheus text format."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics instance
_global_metrics: Optional[StoreMetrics] = None


def get_global_metrics() -> StoreMetrics:
    """Get the process-wide metrics collector."""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = StoreMetrics()
    return _global_metrics

