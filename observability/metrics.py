"""In-process indexing and search statistics.

Every record call also feeds the Prometheus collectors, so ``/metrics`` and
``/cache/stats`` report the same events.
"""

from __future__ import annotations
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from collections import Counter, deque
import threading

from .prometheus_metrics import record_indexing_metrics, record_search_metrics

DEFAULT_WINDOW = timedelta(minutes=5)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MetricPoint:
    """A single metric data point."""
    timestamp: datetime
    value: float
    attributes: Dict[str, Any] = field(default_factory=dict)


class MetricsCollector:
    """Time series of recorded values, pruned to ``retention_period``."""

    def __init__(self, name: str, retention_period: timedelta = timedelta(hours=24)):
        self.name = name
        self.retention_period = retention_period
        self.data_points: deque[MetricPoint] = deque()
        self._lock = threading.Lock()

    def record(self, value: float, attributes: Optional[Dict[str, Any]] = None) -> None:
        now = _now()
        with self._lock:
            self.data_points.append(MetricPoint(timestamp=now, value=value, attributes=attributes or {}))
            cutoff = now - self.retention_period
            while self.data_points and self.data_points[0].timestamp < cutoff:
                self.data_points.popleft()

    def values(self, duration: timedelta = DEFAULT_WINDOW) -> List[float]:
        """Values recorded within the last ``duration``, oldest first."""
        cutoff = _now() - duration
        with self._lock:
            return [p.value for p in self.data_points if p.timestamp >= cutoff]

    def get_average(self, duration: timedelta = DEFAULT_WINDOW) -> float:
        values = self.values(duration)
        return sum(values) / len(values) if values else 0.0

    def get_sum(self, duration: timedelta = DEFAULT_WINDOW) -> float:
        return sum(self.values(duration))

    def get_count(self, duration: timedelta = DEFAULT_WINDOW) -> int:
        return len(self.values(duration))

    def get_percentile(self, percentile: float, duration: timedelta = DEFAULT_WINDOW) -> float:
        """Nearest-rank percentile (0-100) of the windowed values."""
        values = sorted(self.values(duration))
        if not values:
            return 0.0
        rank = max(0, min(len(values) - 1, int(round(percentile / 100 * len(values))) - 1))
        return values[rank]


class IndexingMetrics:
    """Cache hits, fresh builds and failures of ``index_project``."""

    def __init__(self):
        self.cache_hits = MetricsCollector("indexing.cache_hits")
        self.cache_misses = MetricsCollector("indexing.cache_misses")
        self.indexing_duration = MetricsCollector("indexing.duration")
        self.section_count = MetricsCollector("indexing.section_count")
        self.error_count = MetricsCollector("indexing.error_count")

        # Outcome totals since process start
        self.outcomes: Counter = Counter()
        self._lock = threading.Lock()

    def _count(self, outcome: str) -> None:
        with self._lock:
            self.outcomes[outcome] += 1

    def record_cache_hit(self, project_id: str) -> None:
        self.cache_hits.record(1.0, {"project_id": project_id})
        self._count("hit")
        record_indexing_metrics("hit")

    def record_project_indexed(self, project_id: str, duration: float, section_count: int) -> None:
        """A miss that produced and cached a fresh index."""
        attributes = {"project_id": project_id}
        self.cache_misses.record(1.0, attributes)
        self.indexing_duration.record(duration, attributes)
        self.section_count.record(section_count, attributes)
        self._count("miss")
        record_indexing_metrics("miss", duration=duration)

    def record_failure(self, project_id: str, error: str) -> None:
        """A miss that produced nothing; ``error`` is the outcome label."""
        self.cache_misses.record(1.0, {"project_id": project_id})
        self.error_count.record(1.0, {"project_id": project_id, "error_type": error})
        self._count(error)
        record_indexing_metrics(error)

    def get_indexing_stats(self, duration: timedelta = DEFAULT_WINDOW) -> Dict[str, Any]:
        hits = self.cache_hits.get_sum(duration)
        misses = self.cache_misses.get_sum(duration)
        return {
            "cache_hits": hits,
            "cache_misses": misses,
            "hit_rate": hits / (hits + misses) if hits + misses else 0.0,
            "avg_indexing_duration": self.indexing_duration.get_average(duration),
            "p95_indexing_duration": self.indexing_duration.get_percentile(95, duration),
            "avg_sections_per_project": self.section_count.get_average(duration),
            "errors": self.error_count.get_sum(duration),
        }

    def get_outcome_distribution(self) -> Dict[str, int]:
        with self._lock:
            return dict(self.outcomes)


class SearchMetrics:
    """Latency and result sizes of section searches."""

    def __init__(self):
        self.query_duration = MetricsCollector("search.query_duration")
        self.result_count = MetricsCollector("search.result_count")
        self.projects_searched = MetricsCollector("search.projects_searched")

    def record_search_query(self, duration: float, result_count: int, project_count: int) -> None:
        self.query_duration.record(duration)
        self.result_count.record(result_count)
        self.projects_searched.record(project_count)
        record_search_metrics(duration, result_count)

    def get_query_stats(self, duration: timedelta = DEFAULT_WINDOW) -> Dict[str, Any]:
        return {
            "total_queries": self.query_duration.get_count(duration),
            "avg_duration": self.query_duration.get_average(duration),
            "p95_duration": self.query_duration.get_percentile(95, duration),
            "avg_results": self.result_count.get_average(duration),
            "avg_projects_searched": self.projects_searched.get_average(duration),
            "queries_per_minute": self.query_duration.get_count(timedelta(minutes=1)),
        }
