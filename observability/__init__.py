"""Observability package for the project content index."""

from .metrics import (
    MetricsCollector,
    IndexingMetrics,
    SearchMetrics
)
from .logging import setup_logging, get_logger, log_performance
from .prometheus_metrics import (
    setup_prometheus_metrics,
    record_indexing_metrics,
    record_search_metrics,
    update_cache_gauge,
    get_metrics_summary,
    projectindex_registry
)

__all__ = [
    'MetricsCollector',
    'IndexingMetrics',
    'SearchMetrics',
    'setup_logging',
    'get_logger',
    'log_performance',
    'setup_prometheus_metrics',
    'record_indexing_metrics',
    'record_search_metrics',
    'update_cache_gauge',
    'get_metrics_summary',
    'projectindex_registry'
]
