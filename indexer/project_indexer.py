"""Project indexer facade.

Resolves projects through the index cache, building a ProjectIndex from the
record store on a miss, and exposes summaries, cross-project search and cache
management on top of that.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from config.settings import IndexerConfig
from observability.logging import log_performance
from observability.metrics import IndexingMetrics, SearchMetrics
from observability.prometheus_metrics import update_cache_gauge
from .cache import IndexCache
from .document_parser import DocumentParser
from .errors import ProjectNotFoundError, StoreUnavailableError
from .fingerprint import compute_content_hash
from .keywords import KeywordExtractor
from .models import (
    BatchIndexReport,
    BatchIndexResult,
    CacheStats,
    ProjectIndex,
    ProjectSummary,
    RawProjectRecord,
    ScoredSection,
)
from .search import SearchEngine
from .store import ProjectStore
from .summary import build_digest, build_media_context, build_project_summary

logger = logging.getLogger(__name__)


class ProjectIndexer:
    """Builds, caches and searches project indexes.

    One instance owns one IndexCache. Cached indexes are kept until they are
    evicted explicitly; use ``is_stale`` to compare a cached fingerprint with
    the current record.
    """

    def __init__(self,
                 store: ProjectStore,
                 config: Optional[IndexerConfig] = None,
                 cache: Optional[IndexCache] = None):
        self.store = store
        self.config = config or IndexerConfig()
        self.cache = cache if cache is not None else IndexCache()
        self.parser = DocumentParser(section_keyword_limit=self.config.section_keyword_limit)
        self.extractor = KeywordExtractor(
            min_keyword_length=self.config.min_keyword_length,
            section_keyword_limit=self.config.section_keyword_limit,
        )
        self.search_engine = SearchEngine(
            title_weight=self.config.search.title_weight,
            content_weight=self.config.search.content_weight,
            keyword_weight=self.config.search.keyword_weight,
        )
        self.indexing_metrics = IndexingMetrics()
        self.search_metrics = SearchMetrics()

    def build_index(self, record: RawProjectRecord) -> ProjectIndex:
        """Parse, extract and fingerprint a record. Pure; touches neither store nor cache."""
        sections = self.parser.parse(record.article_content)
        extracted = self.extractor.extract(
            record.title,
            record.description,
            record.brief_overview,
            sections,
            record.tags,
        )
        media_context = build_media_context(record.media_items)

        return ProjectIndex(
            project_id=record.id,
            title=record.title,
            keywords=extracted.keywords,
            technologies=extracted.technologies,
            topics=extracted.topics,
            sections=sections,
            media_context=media_context,
            summary=build_digest(record, sections, media_context),
            content_hash=compute_content_hash(record),
            indexed_at=datetime.now(timezone.utc),
        )

    async def index_project(self, project_id: str) -> ProjectIndex:
        """Return the cached index for a project, building it on a miss.

        Raises:
            ProjectNotFoundError: the store has no such project
            StoreUnavailableError: propagated unchanged from the store
        """
        cached = self.cache.get(project_id)
        if cached is not None:
            logger.debug(f"Index cache hit for project {project_id}")
            self.indexing_metrics.record_cache_hit(project_id)
            return cached

        start_time = time.perf_counter()
        try:
            record = await self.store.fetch_by_id(project_id)
        except StoreUnavailableError as e:
            logger.error(f"Store unavailable while indexing project {project_id}: {e}")
            self.indexing_metrics.record_failure(project_id, "store_unavailable")
            raise

        if record is None:
            logger.warning(f"Project not found: {project_id}")
            self.indexing_metrics.record_failure(project_id, "not_found")
            raise ProjectNotFoundError(project_id)

        index = self.build_index(record)
        self.cache.put(project_id, index)
        update_cache_gauge(len(self.cache))

        duration = time.perf_counter() - start_time
        self.indexing_metrics.record_project_indexed(project_id, duration, len(index.sections))
        logger.info(
            f"Indexed project {project_id}: {len(index.sections)} sections, "
            f"{len(index.keywords)} keywords, {len(index.technologies)} technologies "
            f"in {duration * 1000:.1f}ms"
        )
        return index

    @log_performance(threshold_ms=5000.0)
    async def index_projects(self,
                             project_ids: Sequence[str],
                             force_reindex: bool = False,
                             batch_size: Optional[int] = None) -> BatchIndexReport:
        """Index several projects, ``batch_size`` at a time.

        Failures are reported per project rather than raised. With
        ``force_reindex`` every listed project is evicted first.
        """
        if batch_size is None:
            batch_size = self.config.batch_size
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        if force_reindex:
            for project_id in project_ids:
                self.cache.evict(project_id)

        async def _index_one(project_id: str) -> BatchIndexResult:
            try:
                await self.index_project(project_id)
                return BatchIndexResult(project_id=project_id, success=True)
            except (ProjectNotFoundError, StoreUnavailableError) as e:
                return BatchIndexResult(project_id=project_id, success=False, error=str(e))

        results: List[BatchIndexResult] = []
        for i in range(0, len(project_ids), batch_size):
            batch = project_ids[i:i + batch_size]
            results.extend(await asyncio.gather(*(_index_one(pid) for pid in batch)))

        report = BatchIndexReport(results=results, batch_size=batch_size)
        logger.info(
            f"Batch indexed {len(results)} projects: {report.successful} succeeded, {report.failed} failed"
        )
        return report

    async def get_project_summary(self, project_id: str) -> Optional[ProjectSummary]:
        """Summary for AI context, or None when the project cannot be resolved."""
        try:
            index = await self.index_project(project_id)
        except ProjectNotFoundError:
            return None

        projection = await self.store.fetch_summary_projection(project_id)
        if projection is None:
            logger.warning(f"Summary projection missing for indexed project {project_id}")
            return None

        return build_project_summary(index, projection)

    async def search_relevant_content(self,
                                      project_ids: Sequence[str],
                                      query: str,
                                      limit: Optional[int] = None) -> List[ScoredSection]:
        """Rank sections of the given projects against ``query``.

        Projects are resolved cache-first in the given order, which also
        breaks score ties. Ids the store does not know are skipped.
        """
        limit = self.config.default_search_limit if limit is None else limit
        start_time = time.perf_counter()

        indexes: List[ProjectIndex] = []
        for project_id in dict.fromkeys(project_ids):
            try:
                indexes.append(await self.index_project(project_id))
            except ProjectNotFoundError:
                logger.warning(f"Skipping unknown project {project_id} in search")

        results = self.search_engine.search(indexes, query, limit)

        duration = time.perf_counter() - start_time
        self.search_metrics.record_search_query(duration, len(results), len(indexes))
        return results

    async def is_stale(self, project_id: str) -> bool:
        """True when the cached index no longer matches the stored record.

        An uncached project counts as stale. Never modifies the cache.
        """
        cached = self.cache.get(project_id)
        if cached is None:
            return True

        record = await self.store.fetch_by_id(project_id)
        if record is None:
            raise ProjectNotFoundError(project_id)

        stale = compute_content_hash(record) != cached.content_hash
        if stale:
            logger.info(f"Cached index for project {project_id} is stale")
        return stale

    def clear_project_cache(self, project_id: str) -> bool:
        removed = self.cache.evict(project_id)
        update_cache_gauge(len(self.cache))
        return removed

    def clear_all_cache(self) -> int:
        removed = self.cache.evict_all()
        update_cache_gauge(0)
        logger.info(f"Cleared {removed} cached project indexes")
        return removed

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def get_metrics(self) -> Dict[str, Dict]:
        """In-process indexing and search statistics."""
        return {
            "indexing": self.indexing_metrics.get_indexing_stats(),
            "outcomes": self.indexing_metrics.get_outcome_distribution(),
            "search": self.search_metrics.get_query_stats(),
        }


_indexer: Optional[ProjectIndexer] = None


def initialize_indexer(store: ProjectStore, config: Optional[IndexerConfig] = None) -> ProjectIndexer:
    """Create the process-wide indexer. Call once at start-up."""
    global _indexer
    if _indexer is not None:
        logger.warning("Replacing the existing process-wide project indexer")
    _indexer = ProjectIndexer(store, config)
    logger.info("Project indexer initialized")
    return _indexer


def get_indexer() -> ProjectIndexer:
    """Return the process-wide indexer."""
    if _indexer is None:
        raise RuntimeError("Project indexer not initialized. Call initialize_indexer() first.")
    return _indexer


def reset_indexer() -> None:
    global _indexer
    _indexer = None
