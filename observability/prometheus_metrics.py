"""Prometheus metrics integration for the project content index."""

from prometheus_client import Counter, Histogram, Gauge, Info, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import CollectorRegistry
from fastapi import FastAPI, Response
from typing import Optional, Dict, Any
import logging
import os

logger = logging.getLogger(__name__)

# Dedicated registry so tests and embedding hosts don't collide with the default one
projectindex_registry = CollectorRegistry()

index_requests = Counter(
    'projectindex_index_requests_total',
    'Total number of index requests by outcome',
    ['outcome'],
    registry=projectindex_registry
)

index_duration = Histogram(
    'projectindex_index_duration_seconds',
    'Time to fetch, parse and index a project on a cache miss',
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=projectindex_registry
)

search_requests = Counter(
    'projectindex_search_requests_total',
    'Total number of section searches',
    registry=projectindex_registry
)

search_duration = Histogram(
    'projectindex_search_duration_seconds',
    'Search duration in seconds, including cache resolution',
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
    registry=projectindex_registry
)

search_results_count = Histogram(
    'projectindex_search_results_count',
    'Number of sections returned per search',
    buckets=[0, 1, 5, 10, 25, 50],
    registry=projectindex_registry
)

cache_entries = Gauge(
    'projectindex_cache_entries',
    'Number of cached project indexes',
    registry=projectindex_registry
)

app_info = Info(
    'projectindex_app_info',
    'Project content index application information',
    registry=projectindex_registry
)

def setup_prometheus_metrics(app: FastAPI) -> None:
    """Expose ``/metrics`` on a FastAPI app."""

    @app.get("/metrics")
    async def metrics_endpoint():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(projectindex_registry), media_type=CONTENT_TYPE_LATEST)

    app_info.info({
        'version': os.getenv('APP_VERSION', 'unknown'),
        'environment': os.getenv('ENVIRONMENT', 'development')
    })

    logger.info("Prometheus metrics configured")

def record_indexing_metrics(outcome: str, duration: Optional[float] = None) -> None:
    """Record an index request outcome (hit, miss, not_found, store_unavailable)."""
    index_requests.labels(outcome=outcome).inc()
    if duration is not None:
        index_duration.observe(duration)

def record_search_metrics(duration: float, result_count: int) -> None:
    search_requests.inc()
    search_duration.observe(duration)
    search_results_count.observe(result_count)

def update_cache_gauge(size: int) -> None:
    cache_entries.set(size)

def get_metrics_summary() -> Dict[str, Any]:
    """Get a summary of current metric totals."""
    totals: Dict[str, Any] = {}
    for metric in projectindex_registry.collect():
        for sample in metric.samples:
            if sample.name.endswith('_total'):
                key = sample.name
                if sample.labels:
                    key += '{' + ','.join(f'{k}={v}' for k, v in sorted(sample.labels.items())) + '}'
                totals[key] = sample.value
            elif sample.name == 'projectindex_cache_entries':
                totals[sample.name] = sample.value
    return totals
