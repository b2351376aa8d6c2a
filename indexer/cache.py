"""In-memory per-project index cache."""

import logging
import threading
from typing import Dict, Optional

from .models import CacheStats, ProjectIndex

logger = logging.getLogger(__name__)


class IndexCache:
    """Memoization store holding at most one ProjectIndex per project id.

    There is no expiry: entries live until ``evict`` or ``evict_all``. Callers
    that need freshness compare ``content_hash`` against a re-fetched record.
    """

    def __init__(self):
        self._entries: Dict[str, ProjectIndex] = {}
        self._lock = threading.Lock()

    def get(self, project_id: str) -> Optional[ProjectIndex]:
        """Look up a cached index. Never triggers computation."""
        with self._lock:
            return self._entries.get(project_id)

    def put(self, project_id: str, index: ProjectIndex) -> None:
        """Store an index, replacing any existing entry."""
        with self._lock:
            replaced = project_id in self._entries
            self._entries[project_id] = index
        logger.debug(f"{'Replaced' if replaced else 'Cached'} index for project {project_id}")

    def evict(self, project_id: str) -> bool:
        """Drop one entry. Returns True if something was removed."""
        with self._lock:
            removed = self._entries.pop(project_id, None) is not None
        if removed:
            logger.debug(f"Evicted index for project {project_id}")
        return removed

    def evict_all(self) -> int:
        """Drop every entry and return how many were removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug(f"Evicted {count} cached indexes")
        return count

    def stats(self) -> CacheStats:
        """Entry count and cached project ids (entries, not bytes)."""
        with self._lock:
            return CacheStats(project_ids=frozenset(self._entries), size=len(self._entries))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, project_id: object) -> bool:
        with self._lock:
            return project_id in self._entries
