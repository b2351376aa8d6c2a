"""Tests for the per-project index cache."""

import pytest
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from indexer.cache import IndexCache
from indexer.models import ProjectIndex


def make_index(project_id, title="Project"):
    return ProjectIndex(
        project_id=project_id,
        title=title,
        keywords=frozenset(),
        technologies=frozenset(),
        topics=frozenset(),
        sections=(),
        media_context=(),
        summary=f"Project: {title}",
        content_hash="0" * 64,
        indexed_at=datetime.now(timezone.utc),
    )


class TestIndexCache:
    """Basic cache operations."""

    @pytest.fixture
    def cache(self):
        return IndexCache()

    def test_get_missing_returns_none(self, cache):
        assert cache.get("nope") is None
        assert "nope" not in cache

    def test_put_then_get(self, cache):
        index = make_index("p1")
        cache.put("p1", index)
        assert cache.get("p1") is index
        assert "p1" in cache
        assert len(cache) == 1

    def test_put_replaces(self, cache):
        cache.put("p1", make_index("p1", "Old"))
        cache.put("p1", make_index("p1", "New"))
        assert cache.get("p1").title == "New"
        assert len(cache) == 1

    def test_evict(self, cache):
        cache.put("p1", make_index("p1"))
        assert cache.evict("p1") is True
        assert cache.get("p1") is None
        assert cache.evict("p1") is False

    def test_evict_all(self, cache):
        for pid in ("a", "b", "c"):
            cache.put(pid, make_index(pid))
        assert cache.evict_all() == 3
        assert len(cache) == 0
        assert cache.evict_all() == 0

    def test_stats(self, cache):
        cache.put("a", make_index("a"))
        cache.put("b", make_index("b"))
        stats = cache.stats()
        assert stats.size == 2
        assert stats.project_ids == frozenset({"a", "b"})
        assert stats.to_dict() == {"project_ids": ["a", "b"], "size": 2}

    def test_concurrent_puts(self, cache):
        """Parallel writers never lose entries."""
        def writer(offset):
            for i in range(100):
                pid = f"p{offset}-{i}"
                cache.put(pid, make_index(pid))

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 400
