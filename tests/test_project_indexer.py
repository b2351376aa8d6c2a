"""Tests for the ProjectIndexer facade: caching, summaries, search and batches."""

from dataclasses import replace
import pytest
import sys
from pathlib import Path
from unittest.mock import AsyncMock

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import IndexerConfig, SearchWeights
from indexer.errors import ProjectNotFoundError, StoreUnavailableError
from indexer.models import RawProjectRecord, SectionKind
from indexer.project_indexer import (
    ProjectIndexer,
    get_indexer,
    initialize_indexer,
    reset_indexer,
)
from indexer.store import InMemoryProjectStore, ProjectStore


def text(value):
    return {"type": "text", "text": value}


def react_project(project_id="p1"):
    return {
        "id": project_id,
        "title": "React Dashboard",
        "description": "An analytics dashboard",
        "briefOverview": "Dashboards for teams",
        "articleContent": {
            "type": "doc",
            "content": [
                {"type": "heading", "attrs": {"level": 1}, "content": [text("Introduction")]},
                {"type": "paragraph", "content": [text("This is a test paragraph with React and TypeScript.")]},
            ],
        },
        "tags": [{"name": "React"}, {"name": "TypeScript"}],
        "mediaItems": [
            {"id": "m1", "type": "IMAGE", "altText": "Screenshot", "description": "Main view"},
            {"id": "m2", "type": "carousel"},
        ],
        "updatedAt": "2024-01-01T00:00:00Z",
    }


def empty_project(project_id="empty"):
    return {"id": project_id, "title": "Empty Project", "articleContent": None, "tags": []}


@pytest.fixture
def store():
    return InMemoryProjectStore([react_project(), empty_project()])


@pytest.fixture
def indexer(store):
    return ProjectIndexer(store)


class TestIndexProject:
    """Building and caching single project indexes."""

    @pytest.mark.asyncio
    async def test_builds_sections_and_metadata(self, indexer):
        index = await indexer.index_project("p1")

        assert index.project_id == "p1"
        assert index.title == "React Dashboard"
        assert len(index.sections) == 2
        assert index.sections[0].kind is SectionKind.HEADING
        assert index.sections[0].title == "Introduction"
        assert index.sections[1].kind is SectionKind.PARAGRAPH
        assert index.sections[1].content == "This is a test paragraph with React and TypeScript."
        assert {"react", "typescript"} <= index.technologies
        assert {"react", "typescript", "dashboard"} <= index.keywords
        assert "data science" in index.topics
        assert len(index.content_hash) == 64

    @pytest.mark.asyncio
    async def test_media_context(self, indexer):
        index = await indexer.index_project("p1")

        first, second = index.media_context
        assert first.type == "image"
        assert first.alt_text == "Screenshot"
        assert first.context == "Media item 1 in project"
        assert first.relevance_score == 0.7
        assert second.type == "carousel"
        assert second.relevance_score == 0.8

    @pytest.mark.asyncio
    async def test_digest_text(self, indexer):
        index = await indexer.index_project("p1")
        assert index.summary.splitlines() == [
            "Project: React Dashboard",
            "Overview: Dashboards for teams",
            "Description: An analytics dashboard",
            "Content sections: 2",
            "Media items: 2",
            "Tags: React, TypeScript",
        ]

    @pytest.mark.asyncio
    async def test_project_without_content(self, indexer):
        index = await indexer.index_project("empty")

        assert index.sections == ()
        assert index.media_context == ()
        assert index.keywords == frozenset({"empty", "project"})
        assert index.technologies == frozenset()
        assert index.summary == "Project: Empty Project"

    @pytest.mark.asyncio
    async def test_deeply_nested_article(self, store):
        tree = {"type": "paragraph", "content": [text("innermost words")]}
        for _ in range(sys.getrecursionlimit() * 5):
            tree = {"type": "blockquote", "content": [tree]}
        store.add({"id": "deep", "title": "Deep Quotes", "articleContent": {"type": "doc", "content": [tree]}})

        index = await ProjectIndexer(store).index_project("deep")

        assert len(index.sections) == 1
        assert index.sections[0].content == "innermost words"
        assert len(index.content_hash) == 64

    def test_build_index_is_deterministic(self, indexer):
        """Rebuilding from the same record yields the same index apart from indexed_at."""
        record = RawProjectRecord.from_dict(react_project())
        reordered = RawProjectRecord.from_dict({**react_project(), "tags": ["TypeScript", "React"]})

        first = indexer.build_index(record)
        second = indexer.build_index(record)
        swapped = indexer.build_index(reordered)

        assert replace(first, indexed_at=second.indexed_at) == second
        assert swapped.keywords == first.keywords
        assert swapped.technologies == first.technologies
        assert swapped.content_hash != first.content_hash

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, indexer, store):
        first = await indexer.index_project("p1")
        second = await indexer.index_project("p1")

        assert second is first
        assert store.fetch_counts["p1"] == 1

    @pytest.mark.asyncio
    async def test_cached_index_survives_record_changes(self, indexer, store):
        """Cached entries are never revalidated implicitly."""
        first = await indexer.index_project("p1")
        changed = react_project()
        changed["title"] = "Renamed"
        store.add(changed)

        assert await indexer.index_project("p1") is first

    @pytest.mark.asyncio
    async def test_eviction_forces_rebuild(self, indexer, store):
        first = await indexer.index_project("p1")
        assert indexer.clear_project_cache("p1") is True

        second = await indexer.index_project("p1")

        assert second is not first
        assert store.fetch_counts["p1"] == 2
        assert second.content_hash == first.content_hash

    @pytest.mark.asyncio
    async def test_unknown_project_raises_not_found(self, indexer):
        with pytest.raises(ProjectNotFoundError) as exc_info:
            await indexer.index_project("missing")

        assert exc_info.value.project_id == "missing"
        assert "missing" not in indexer.cache

    @pytest.mark.asyncio
    async def test_store_failure_propagates_and_caches_nothing(self):
        store = ProjectStore()
        store.fetch_by_id = AsyncMock(side_effect=StoreUnavailableError("db down", project_id="p1"))
        indexer = ProjectIndexer(store)

        with pytest.raises(StoreUnavailableError):
            await indexer.index_project("p1")

        assert indexer.get_cache_stats().size == 0
        assert indexer.get_metrics()["outcomes"]["store_unavailable"] == 1

    @pytest.mark.asyncio
    async def test_metrics_record_hits_and_misses(self, indexer):
        await indexer.index_project("p1")
        await indexer.index_project("p1")
        await indexer.index_project("p1")

        metrics = indexer.get_metrics()
        assert metrics["outcomes"] == {"miss": 1, "hit": 2}
        assert metrics["indexing"]["cache_hits"] == 2
        assert metrics["indexing"]["cache_misses"] == 1


class TestCacheManagement:
    """Explicit eviction and stats."""

    @pytest.mark.asyncio
    async def test_stats_track_cached_projects(self, indexer):
        await indexer.index_project("p1")
        await indexer.index_project("empty")

        stats = indexer.get_cache_stats()
        assert stats.size == 2
        assert stats.project_ids == frozenset({"p1", "empty"})

    def test_clear_unknown_project_is_a_no_op(self, indexer):
        assert indexer.clear_project_cache("nothing") is False

    @pytest.mark.asyncio
    async def test_clear_all(self, indexer, store):
        await indexer.index_project("p1")
        await indexer.index_project("empty")

        assert indexer.clear_all_cache() == 2
        assert indexer.get_cache_stats().size == 0

        await indexer.index_project("p1")
        assert store.fetch_counts["p1"] == 2

    @pytest.mark.asyncio
    async def test_is_stale(self, indexer, store):
        assert await indexer.is_stale("p1") is True

        await indexer.index_project("p1")
        assert await indexer.is_stale("p1") is False

        changed = react_project()
        changed["tags"] = [{"name": "React"}]
        store.add(changed)
        assert await indexer.is_stale("p1") is True
        # checking never touches the cache
        assert "p1" in indexer.cache

    @pytest.mark.asyncio
    async def test_is_stale_for_deleted_project(self, indexer, store):
        await indexer.index_project("p1")
        store.remove("p1")

        with pytest.raises(ProjectNotFoundError):
            await indexer.is_stale("p1")


class TestProjectSummary:
    """AI-context summaries."""

    @pytest.mark.asyncio
    async def test_summary_fields(self, indexer):
        summary = await indexer.get_project_summary("p1")

        assert summary.project_id == "p1"
        assert summary.title == "React Dashboard"
        assert summary.brief_summary == "Dashboards for teams"
        assert summary.detailed_summary.startswith("Project: React Dashboard")
        assert summary.key_technologies == ["react", "typescript"]
        assert summary.content_structure.total_sections == 2
        assert summary.content_structure.content_types == ["heading", "paragraph"]
        assert summary.content_structure.estimated_read_time == 1

        hierarchy = summary.content_structure.heading_hierarchy
        assert [h.title for h in hierarchy] == ["Introduction"]

        media = summary.media_overview
        assert media.total_images == 1
        assert media.has_carousels is True
        assert media.has_downloads is False
        assert media.media_descriptions == ["Main view"]

    @pytest.mark.asyncio
    async def test_summary_for_empty_project(self, indexer):
        summary = await indexer.get_project_summary("empty")

        assert summary.content_structure.total_sections == 0
        assert summary.content_structure.estimated_read_time == 0
        assert summary.brief_summary == ""

    @pytest.mark.asyncio
    async def test_summary_for_unknown_project_is_none(self, indexer):
        assert await indexer.get_project_summary("missing") is None

    @pytest.mark.asyncio
    async def test_summary_reuses_cached_index(self, indexer, store):
        await indexer.index_project("p1")
        await indexer.get_project_summary("p1")

        assert store.fetch_counts["p1"] == 1
        assert store.projection_counts["p1"] == 1

    @pytest.mark.asyncio
    async def test_nested_heading_hierarchy(self, store):
        store.add({
            "id": "outline",
            "title": "Outline",
            "articleContent": {"type": "doc", "content": [
                {"type": "heading", "attrs": {"level": 1}, "content": [text("Top")]},
                {"type": "heading", "attrs": {"level": 2}, "content": [text("Child")]},
                {"type": "heading", "attrs": {"level": 3}, "content": [text("Grandchild")]},
                {"type": "heading", "attrs": {"level": 2}, "content": [text("Sibling")]},
                {"type": "heading", "attrs": {"level": 1}, "content": [text("Second")]},
            ]},
        })
        indexer = ProjectIndexer(store)

        summary = await indexer.get_project_summary("outline")
        roots = summary.content_structure.heading_hierarchy

        assert [r.title for r in roots] == ["Top", "Second"]
        assert [c.title for c in roots[0].children] == ["Child", "Sibling"]
        assert [g.title for g in roots[0].children[0].children] == ["Grandchild"]


class TestSearchRelevantContent:
    """Cross-project search through the facade."""

    @pytest.mark.asyncio
    async def test_finds_matching_sections(self, indexer):
        results = await indexer.search_relevant_content(["p1"], "react")

        assert len(results) >= 1
        top = results[0]
        assert top.project_id == "p1"
        assert top.section.kind is SectionKind.PARAGRAPH
        assert top.score > 0

    @pytest.mark.asyncio
    async def test_scores_are_non_increasing(self, store):
        store.add({
            "id": "p2",
            "title": "Vue Notes",
            "articleContent": {"type": "doc", "content": [
                {"type": "heading", "attrs": {"level": 1}, "content": [text("React vs Vue")]},
                {"type": "paragraph", "content": [text("Some react comparisons")]},
            ]},
        })
        indexer = ProjectIndexer(store)

        results = await indexer.search_relevant_content(["p1", "p2"], "react")
        scores = [r.score for r in results]

        assert scores == sorted(scores, reverse=True)
        assert {r.project_id for r in results} == {"p1", "p2"}

    @pytest.mark.asyncio
    async def test_limit_respected(self, indexer):
        results = await indexer.search_relevant_content(["p1"], "react typescript introduction", limit=1)
        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_uses_configured_default_limit(self, store):
        indexer = ProjectIndexer(store, IndexerConfig(default_search_limit=1))
        results = await indexer.search_relevant_content(["p1"], "react introduction")
        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_no_match_returns_empty(self, indexer):
        assert await indexer.search_relevant_content(["p1"], "kubernetes") == []

    @pytest.mark.asyncio
    async def test_unknown_projects_skipped(self, indexer):
        results = await indexer.search_relevant_content(["missing", "p1"], "react")
        assert results
        assert all(r.project_id == "p1" for r in results)

    @pytest.mark.asyncio
    async def test_search_populates_cache(self, indexer, store):
        await indexer.search_relevant_content(["p1"], "react")
        await indexer.search_relevant_content(["p1"], "typescript")

        assert "p1" in indexer.cache
        assert store.fetch_counts["p1"] == 1

    @pytest.mark.asyncio
    async def test_duplicate_ids_searched_once(self, indexer):
        once = await indexer.search_relevant_content(["p1"], "react")
        twice = await indexer.search_relevant_content(["p1", "p1"], "react")
        assert [r.section.id for r in twice] == [r.section.id for r in once]

    @pytest.mark.asyncio
    async def test_custom_weights_change_ranking(self, indexer, store):
        config = IndexerConfig(search=SearchWeights(title_weight=0.0, content_weight=5.0, keyword_weight=0.0))
        weighted = ProjectIndexer(store, config)

        results = await weighted.search_relevant_content(["p1"], "introduction react")

        assert results[0].section.kind is SectionKind.PARAGRAPH
        assert all(r.section.kind is SectionKind.PARAGRAPH for r in results)

    @pytest.mark.asyncio
    async def test_react_typescript_project_ranks_react_first(self):
        """A project about React and TypeScript answers a React TypeScript query."""
        store = InMemoryProjectStore([{
            "id": "rt",
            "title": "React TypeScript Project",
            "articleContent": {"type": "doc", "content": [
                {"type": "heading", "attrs": {"level": 1}, "content": [text("React Components")]},
                {"type": "paragraph", "content": [text("Typed props and hooks written in TypeScript.")]},
            ]},
            "tags": ["React", "TypeScript"],
        }])
        indexer = ProjectIndexer(store)

        results = await indexer.search_relevant_content(["rt"], "React TypeScript", 5)

        assert results
        top = results[0].section
        assert top.id == "section-1"
        assert (
            "react" in (top.title or "").lower()
            or "react" in top.content.lower()
            or "react" in top.keywords
        )
        assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)

    @pytest.mark.asyncio
    async def test_search_metrics_recorded(self, indexer):
        await indexer.search_relevant_content(["p1"], "react")
        assert indexer.get_metrics()["search"]["total_queries"] == 1


class TestBatchIndexing:
    """Batch indexing with per-project outcomes."""

    @pytest.mark.asyncio
    async def test_reports_success_and_failure(self, indexer):
        report = await indexer.index_projects(["p1", "missing", "empty"])

        assert report.successful == 2
        assert report.failed == 1
        assert report.batch_size == 5
        failed = [r for r in report.results if not r.success]
        assert failed[0].project_id == "missing"
        assert "missing" in failed[0].error

    @pytest.mark.asyncio
    async def test_results_keep_input_order_across_batches(self, indexer):
        ids = ["p1", "missing", "empty"]
        report = await indexer.index_projects(ids, batch_size=2)
        assert [r.project_id for r in report.results] == ids
        assert report.batch_size == 2

    @pytest.mark.asyncio
    async def test_force_reindex_refetches(self, indexer, store):
        await indexer.index_project("p1")

        await indexer.index_projects(["p1"])
        assert store.fetch_counts["p1"] == 1

        await indexer.index_projects(["p1"], force_reindex=True)
        assert store.fetch_counts["p1"] == 2

    @pytest.mark.asyncio
    async def test_invalid_batch_size(self, indexer):
        with pytest.raises(ValueError):
            await indexer.index_projects(["p1"], batch_size=-1)

    @pytest.mark.asyncio
    async def test_zero_batch_size_rejected(self, indexer):
        """An explicit zero is not replaced by the configured default."""
        with pytest.raises(ValueError):
            await indexer.index_projects(["p1"], batch_size=0)

    @pytest.mark.asyncio
    async def test_report_serialization(self, indexer):
        data = (await indexer.index_projects(["p1", "missing"])).to_dict()
        assert data["summary"] == {"total": 2, "successful": 1, "failed": 1, "batch_size": 5}


class TestProcessWideIndexer:
    """initialize_indexer / get_indexer / reset_indexer."""

    def setup_method(self):
        reset_indexer()

    def teardown_method(self):
        reset_indexer()

    def test_get_before_initialize_raises(self):
        with pytest.raises(RuntimeError):
            get_indexer()

    def test_initialize_then_get(self, store):
        created = initialize_indexer(store, IndexerConfig(batch_size=2))
        assert get_indexer() is created
        assert created.config.batch_size == 2

    def test_reinitialize_replaces(self, store):
        first = initialize_indexer(store)
        second = initialize_indexer(store)
        assert get_indexer() is second
        assert second is not first
