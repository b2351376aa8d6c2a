"""Project store configuration and factory.

Supports an in-memory store (development, tests) and SQLite (single-file
persistence of project records).
"""

import os
import logging
from enum import Enum
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class StoreType(str, Enum):
    """Supported store backends."""
    MEMORY = "memory"
    SQLITE = "sqlite"


class StoreConfig(BaseModel):
    """Project store configuration."""
    type: StoreType = Field(default=StoreType.MEMORY, description="Store backend")
    sqlite_path: str = Field(default="projects.db", description="SQLite database path")

    @classmethod
    def from_env(cls) -> 'StoreConfig':
        """Create configuration from environment variables."""
        store_type = os.getenv('PROJECTINDEX_STORE_TYPE', 'memory').lower()
        if store_type == StoreType.SQLITE.value:
            return cls(
                type=StoreType.SQLITE,
                sqlite_path=os.getenv('PROJECTINDEX_SQLITE_PATH', 'projects.db')
            )
        return cls(type=StoreType.MEMORY)


async def create_store(config: StoreConfig):
    """Build and initialize the configured store adapter."""
    # Import here to avoid circular imports
    from indexer.sqlite_store import SQLiteProjectStore
    from indexer.store import InMemoryProjectStore

    if config.type == StoreType.SQLITE:
        logger.info("Initializing SQLite project store")
        store = SQLiteProjectStore(config.sqlite_path)
        await store.initialize()
        return store

    logger.info("Initializing in-memory project store")
    return InMemoryProjectStore()
