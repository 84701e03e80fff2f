"""Metrics collection for search and indexing.

Provides a thin convenience wrapper around ``prometheus_client`` so the
ranker, caches, stores, and indexer record metrics with consistent labels.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per collector (can be injected for testing)
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


class MetricsCollector:
    """Centralized metrics collection.

    Parameters
    - service_name: Logical name of the process recording metrics
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.search_requests = Counter(
            'fm_search_requests_total',
            'Total n-gram search requests',
            ['document_type', 'strategy'],
            registry=self.registry
        )

        self.search_duration = Histogram(
            'fm_search_duration_seconds',
            'N-gram search duration',
            ['document_type', 'strategy'],
            registry=self.registry
        )

        self.cache_hits = Counter(
            'fm_cache_hits_total',
            'Total cache hits',
            ['cache_type'],
            registry=self.registry
        )

        self.cache_misses = Counter(
            'fm_cache_misses_total',
            'Total cache misses',
            ['cache_type'],
            registry=self.registry
        )

        self.store_operations = Counter(
            'fm_store_operations_total',
            'Total n-gram store operations',
            ['operation', 'collection'],
            registry=self.registry
        )

        self.reindex_runs = Counter(
            'fm_reindex_runs_total',
            'Validate-and-reindex runs partitioned by outcome',
            ['document_type', 'outcome'],
            registry=self.registry
        )

    def record_search(self, document_type: str, strategy: str, duration: float) -> None:
        """Record search metrics. ``duration`` is in seconds."""
        self.search_requests.labels(document_type=document_type, strategy=strategy).inc()
        self.search_duration.labels(document_type=document_type, strategy=strategy).observe(duration)

    def record_cache_hit(self, cache_type: str) -> None:
        """Record cache hit."""
        self.cache_hits.labels(cache_type=cache_type).inc()

    def record_cache_miss(self, cache_type: str) -> None:
        """Record cache miss."""
        self.cache_misses.labels(cache_type=cache_type).inc()

    def record_store_operation(self, operation: str, collection: str) -> None:
        self.store_operations.labels(operation=operation, collection=collection).inc()

    def record_reindex(self, document_type: str, outcome: str) -> None:
        """Record a validate-and-reindex run (``consistent``, ``regenerated``, ``failed``)."""
        self.reindex_runs.labels(document_type=document_type, outcome=outcome).inc()

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Get or create the process-wide metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
    return _metrics_collector
