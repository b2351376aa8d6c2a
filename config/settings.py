"""Indexer configuration.

Values come from defaults, an optional YAML file, and ``PROJECTINDEX_*``
environment variables.
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class SearchWeights(BaseModel):
    """Per-signal weights used by the search engine."""
    title_weight: float = Field(default=3.0, ge=0, description="Query token found in a section title")
    content_weight: float = Field(default=2.0, ge=0, description="Query token found in section content")
    keyword_weight: float = Field(default=1.0, ge=0, description="Query token is a section keyword or project technology")


class IndexerConfig(BaseModel):
    """Indexer, search and logging settings."""
    min_keyword_length: int = Field(default=3, ge=1, description="Shortest title token kept as a keyword")
    section_keyword_limit: int = Field(default=10, ge=1, description="Keywords kept per section")
    search: SearchWeights = Field(default_factory=SearchWeights)
    default_search_limit: int = Field(default=10, ge=1)
    max_search_limit: int = Field(default=50, ge=1)
    batch_size: int = Field(default=5, ge=1, description="Projects indexed concurrently per batch")
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)

    @classmethod
    def from_env(cls) -> 'IndexerConfig':
        """Create configuration from environment variables."""
        defaults = cls()
        return cls(
            min_keyword_length=int(os.getenv('PROJECTINDEX_MIN_KEYWORD_LENGTH', str(defaults.min_keyword_length))),
            section_keyword_limit=int(os.getenv('PROJECTINDEX_SECTION_KEYWORD_LIMIT', str(defaults.section_keyword_limit))),
            search=SearchWeights(
                title_weight=float(os.getenv('PROJECTINDEX_TITLE_WEIGHT', str(defaults.search.title_weight))),
                content_weight=float(os.getenv('PROJECTINDEX_CONTENT_WEIGHT', str(defaults.search.content_weight))),
                keyword_weight=float(os.getenv('PROJECTINDEX_KEYWORD_WEIGHT', str(defaults.search.keyword_weight))),
            ),
            default_search_limit=int(os.getenv('PROJECTINDEX_DEFAULT_SEARCH_LIMIT', str(defaults.default_search_limit))),
            max_search_limit=int(os.getenv('PROJECTINDEX_MAX_SEARCH_LIMIT', str(defaults.max_search_limit))),
            batch_size=int(os.getenv('PROJECTINDEX_BATCH_SIZE', str(defaults.batch_size))),
            log_level=os.getenv('PROJECTINDEX_LOG_LEVEL', defaults.log_level),
            log_json=os.getenv('PROJECTINDEX_LOG_JSON', 'false').lower() in ('1', 'true', 'yes'),
        )

    @classmethod
    def from_yaml(cls, config_path: str) -> 'IndexerConfig':
        """Load configuration from a YAML file, falling back to defaults for missing keys."""
        path = Path(config_path)
        if not path.exists():
            logger.warning(f"Indexer config file not found, using defaults: {config_path}")
            return cls()

        with open(path, 'r', encoding='utf-8') as f:
            file_config: Dict[str, Any] = yaml.safe_load(f) or {}

        logger.info(f"Loaded indexer configuration from {config_path}")
        return cls(**file_config.get('indexer', file_config))


def load_config(config_path: Optional[str] = None) -> IndexerConfig:
    """Load from ``config_path`` or ``PROJECTINDEX_CONFIG`` when set, else the environment."""
    config_path = config_path or os.environ.get('PROJECTINDEX_CONFIG')
    if config_path:
        return IndexerConfig.from_yaml(config_path)
    return IndexerConfig.from_env()
