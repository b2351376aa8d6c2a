"""Project record store contract and the in-memory adapter.

The indexer only ever reads from a store. Adapters return ``None`` for ids
they do not know and raise ``StoreUnavailableError`` when the backend fails.
"""

import logging
import threading
from collections import Counter
from typing import Any, Dict, Iterable, Optional, Union

from .models import RawProjectRecord, SummaryProjection

logger = logging.getLogger(__name__)


class ProjectStore:
    """Read contract the indexer expects from its record store."""

    async def fetch_by_id(self, project_id: str) -> Optional[RawProjectRecord]:
        """Fetch the full record, or None when the project does not exist."""
        raise NotImplementedError

    async def fetch_summary_projection(self, project_id: str) -> Optional[SummaryProjection]:
        """Fetch title, brief overview, description and tags only."""
        raise NotImplementedError


class InMemoryProjectStore(ProjectStore):
    """Dict-backed store for tests, demos and embedding in other services.

    Fetch calls are counted per id so callers can observe cache behaviour.
    """

    def __init__(self, records: Optional[Iterable[Union[RawProjectRecord, Dict[str, Any]]]] = None):
        self._records: Dict[str, RawProjectRecord] = {}
        self._lock = threading.Lock()
        self.fetch_counts: Counter = Counter()
        self.projection_counts: Counter = Counter()
        for record in records or ():
            self.add(record)

    def add(self, record: Union[RawProjectRecord, Dict[str, Any]]) -> RawProjectRecord:
        """Insert or replace a record."""
        if isinstance(record, dict):
            record = RawProjectRecord.from_dict(record)
        with self._lock:
            self._records[record.id] = record
        return record

    def remove(self, project_id: str) -> bool:
        with self._lock:
            return self._records.pop(project_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    async def fetch_by_id(self, project_id: str) -> Optional[RawProjectRecord]:
        with self._lock:
            self.fetch_counts[project_id] += 1
            return self._records.get(project_id)

    async def fetch_summary_projection(self, project_id: str) -> Optional[SummaryProjection]:
        with self._lock:
            self.projection_counts[project_id] += 1
            record = self._records.get(project_id)
        if record is None:
            return None
        return SummaryProjection(
            id=record.id,
            title=record.title,
            brief_overview=record.brief_overview,
            description=record.description,
            tags=record.tags,
        )
