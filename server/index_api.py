"""HTTP API for the project content index.

Thin FastAPI layer over ProjectIndexer: indexing, summaries, AI-context
search and cache management.
"""

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
import logging
import time

from config.settings import IndexerConfig, load_config
from config.store import StoreConfig, create_store
from indexer.errors import ProjectNotFoundError, StoreUnavailableError
from indexer.project_indexer import ProjectIndexer, get_indexer, initialize_indexer
from observability.logging import setup_logging
from observability.prometheus_metrics import setup_prometheus_metrics

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


class BatchIndexRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_ids: List[str] = Field(default_factory=list, alias="projectIds")
    force_reindex: bool = Field(default=False, alias="forceReindex")
    batch_size: Optional[int] = Field(default=None, alias="batchSize", ge=1, le=50)


def create_app(indexer: Optional[ProjectIndexer] = None) -> FastAPI:
    """Build the API around ``indexer``.

    Without an explicit indexer the process-wide one is used, created on
    startup from environment configuration when nobody initialized it yet.
    """
    app = FastAPI(title="Project Content Index API", version="0.1.0")

    def _indexer() -> ProjectIndexer:
        return indexer if indexer is not None else get_indexer()

    @app.on_event("startup")
    async def startup_event():
        if indexer is not None:
            return
        try:
            get_indexer()
        except RuntimeError:
            config = load_config()
            setup_logging(level=config.log_level, use_json=config.log_json)
            store = await create_store(StoreConfig.from_env())
            initialize_indexer(store, config)

    @app.exception_handler(ProjectNotFoundError)
    async def not_found_handler(request: Request, exc: ProjectNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc), "project_id": exc.project_id})

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        logger.error(f"Store unavailable for {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Project store unavailable"})

    @app.get("/health")
    async def health():
        return {"status": "ok", "cached_projects": _indexer().get_cache_stats().size}

    @app.post("/projects/{project_id}/index")
    async def index_project(
        project_id: str,
        force_reindex: bool = Query(default=False, alias="forceReindex"),
        include_sections: bool = Query(default=False, alias="includeSections"),
        include_media: bool = Query(default=False, alias="includeMedia"),
        include_content: bool = Query(default=False, alias="includeContent"),
    ):
        current = _indexer()
        if force_reindex:
            current.clear_project_cache(project_id)
            cache_status = "refreshed"
        elif project_id in current.get_cache_stats().project_ids:
            cache_status = "cached"
        else:
            cache_status = "indexed"

        index = await current.index_project(project_id)
        data = index.to_dict(
            include_sections=include_sections,
            include_media=include_media,
            include_content=include_content,
        )
        data["metadata"] = {
            "sections_count": len(index.sections),
            "media_items_count": len(index.media_context),
            "cache_status": cache_status,
        }
        return data

    @app.get("/projects/{project_id}/summary")
    async def project_summary(project_id: str):
        summary = await _indexer().get_project_summary(project_id)
        if summary is None:
            raise HTTPException(status_code=404, detail=f"Project not found: {project_id}")
        return summary.to_dict()

    @app.get("/projects/{project_id}/freshness")
    async def project_freshness(project_id: str):
        stale = await _indexer().is_stale(project_id)
        return {"project_id": project_id, "stale": stale}

    @app.get("/search/ai-context")
    async def ai_context_search(
        query: str = Query(default=""),
        project_ids: str = Query(default="", alias="projectIds"),
        limit: Optional[int] = Query(default=None, ge=1),
        include_content: bool = Query(default=False, alias="includeContent"),
    ):
        current = _indexer()
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            raise HTTPException(
                status_code=400,
                detail=f"Query must be at least {MIN_QUERY_LENGTH} characters long"
            )

        ids = [pid.strip() for pid in project_ids.split(',') if pid.strip()]
        if not ids:
            raise HTTPException(status_code=400, detail="projectIds must list at least one project")

        config: IndexerConfig = current.config
        limit = min(limit or config.default_search_limit, config.max_search_limit)

        start_time = time.perf_counter()
        results = await current.search_relevant_content(ids, query, limit)
        search_time_ms = (time.perf_counter() - start_time) * 1000

        return {
            "query": query,
            "results": [r.to_dict(include_content=include_content) for r in results],
            "total_results": len(results),
            "projects_searched": len(dict.fromkeys(ids)),
            "search_time_ms": round(search_time_ms, 2),
            "parameters": {"limit": limit, "include_content": include_content},
        }

    @app.post("/index/batch")
    async def batch_index(request: BatchIndexRequest):
        if not request.project_ids:
            raise HTTPException(status_code=400, detail="projectIds must list at least one project")
        report = await _indexer().index_projects(
            request.project_ids,
            force_reindex=request.force_reindex,
            batch_size=request.batch_size,
        )
        return report.to_dict()

    @app.get("/cache/stats")
    async def cache_stats():
        current = _indexer()
        return {**current.get_cache_stats().to_dict(), "metrics": current.get_metrics()}

    @app.delete("/cache/{project_id}")
    async def clear_project_cache(project_id: str):
        removed = _indexer().clear_project_cache(project_id)
        return {"project_id": project_id, "removed": removed}

    @app.delete("/cache")
    async def clear_all_cache():
        removed = _indexer().clear_all_cache()
        return {"removed": removed}

    setup_prometheus_metrics(app)
    return app


app = create_app()
