"""SQLite project record store.

Persists project records (never indexes) in a single database file. Backend
failures surface as ``StoreUnavailableError``.
"""

import sqlite3
import logging
import json
from typing import List, Dict, Any, Optional
from datetime import datetime

from .errors import StoreUnavailableError
from .models import MediaItem, RawProjectRecord, SummaryProjection
from .store import ProjectStore

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    brief_overview TEXT,
    article_content TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS project_tags (
    project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    PRIMARY KEY (project_id, position)
);

CREATE TABLE IF NOT EXISTS project_media (
    id TEXT NOT NULL,
    project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    display_order INTEGER NOT NULL,
    type TEXT NOT NULL,
    url TEXT,
    alt_text TEXT,
    description TEXT,
    PRIMARY KEY (project_id, id)
);

CREATE INDEX IF NOT EXISTS idx_project_tags_project ON project_tags(project_id);
CREATE INDEX IF NOT EXISTS idx_project_media_project ON project_media(project_id, display_order);
"""


class SQLiteProjectStore(ProjectStore):
    """SQLite-backed project record store."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None

    async def initialize(self):
        """Open the connection and ensure the schema exists."""
        try:
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.executescript(SCHEMA_SQL)
            self.conn.commit()
            logger.info(f"SQLite project store initialized: {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize SQLite project store: {e}")
            raise StoreUnavailableError(f"Cannot open project store at {self.db_path}: {e}") from e

    async def close(self):
        """Close SQLite connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("SQLite project store closed")

    def _connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StoreUnavailableError("Project store not initialized. Call initialize() first.")
        return self.conn

    async def upsert_project(self, record: RawProjectRecord) -> None:
        """Insert or replace a project with its tags and media items."""
        conn = self._connection()
        updated_at = record.updated_at.isoformat() if isinstance(record.updated_at, datetime) else record.updated_at
        article_json = json.dumps(record.article_content) if record.article_content is not None else None

        try:
            with conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO projects (id, title, description, brief_overview, article_content, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (record.id, record.title, record.description, record.brief_overview, article_json, updated_at)
                )
                conn.execute("DELETE FROM project_tags WHERE project_id = ?", (record.id,))
                conn.executemany(
                    "INSERT INTO project_tags (project_id, position, name) VALUES (?, ?, ?)",
                    [(record.id, i, name) for i, name in enumerate(record.tags)]
                )
                conn.execute("DELETE FROM project_media WHERE project_id = ?", (record.id,))
                conn.executemany(
                    """
                    INSERT INTO project_media (id, project_id, display_order, type, url, alt_text, description)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (m.id, record.id, i, m.type, m.url, m.alt_text, m.description)
                        for i, m in enumerate(record.media_items)
                    ]
                )
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Failed to store project {record.id}: {e}", record.id) from e

        logger.debug(f"Stored project record {record.id}")

    async def delete_project(self, project_id: str) -> bool:
        conn = self._connection()
        try:
            with conn:
                cursor = conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Failed to delete project {project_id}: {e}", project_id) from e
        return cursor.rowcount > 0

    def _fetch_tags(self, conn: sqlite3.Connection, project_id: str) -> List[str]:
        cursor = conn.execute(
            "SELECT name FROM project_tags WHERE project_id = ? ORDER BY position",
            (project_id,)
        )
        return [row['name'] for row in cursor.fetchall()]

    def _fetch_media(self, conn: sqlite3.Connection, project_id: str) -> List[MediaItem]:
        cursor = conn.execute(
            """
            SELECT id, type, url, alt_text, description
            FROM project_media
            WHERE project_id = ?
            ORDER BY display_order
            """,
            (project_id,)
        )
        return [
            MediaItem(
                id=row['id'],
                type=row['type'],
                url=row['url'],
                alt_text=row['alt_text'],
                description=row['description'],
            )
            for row in cursor.fetchall()
        ]

    @staticmethod
    def _decode_article(project_id: str, raw: Optional[str]) -> Any:
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (ValueError, RecursionError) as e:
            logger.warning(f"Ignoring unreadable article content for {project_id}: {e}")
            return None

    async def fetch_by_id(self, project_id: str) -> Optional[RawProjectRecord]:
        conn = self._connection()
        try:
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
            if row is None:
                return None
            tags = self._fetch_tags(conn, project_id)
            media = self._fetch_media(conn, project_id)
        except sqlite3.Error as e:
            logger.error(f"Project fetch failed for {project_id}: {e}")
            raise StoreUnavailableError(f"Failed to fetch project {project_id}: {e}", project_id) from e

        data: Dict[str, Any] = dict(row)
        article = self._decode_article(project_id, data['article_content'])

        return RawProjectRecord.from_dict({
            'id': data['id'],
            'title': data['title'],
            'description': data['description'],
            'brief_overview': data['brief_overview'],
            'article_content': article,
            'media_items': media,
            'tags': tags,
            'updated_at': data['updated_at'],
        })

    async def fetch_summary_projection(self, project_id: str) -> Optional[SummaryProjection]:
        conn = self._connection()
        try:
            row = conn.execute(
                "SELECT id, title, brief_overview, description FROM projects WHERE id = ?",
                (project_id,)
            ).fetchone()
            if row is None:
                return None
            tags = self._fetch_tags(conn, project_id)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Failed to fetch project {project_id}: {e}", project_id) from e

        return SummaryProjection(
            id=row['id'],
            title=row['title'],
            brief_overview=row['brief_overview'],
            description=row['description'],
            tags=tuple(tags),
        )

    async def get_store_stats(self) -> Dict[str, Any]:
        """Row counts for monitoring."""
        conn = self._connection()
        return {
            'project_count': conn.execute("SELECT COUNT(*) FROM projects").fetchone()[0],
            'tag_count': conn.execute("SELECT COUNT(*) FROM project_tags").fetchone()[0],
            'media_count': conn.execute("SELECT COUNT(*) FROM project_media").fetchone()[0],
        }
