"""Project content index.

Parses project article content into searchable sections, derives keyword and
technology metadata, caches the result per project and ranks sections across
projects for free-text queries.
"""

from .cache import IndexCache
from .document_parser import DocumentParser, flatten_text, build_node
from .errors import IndexerError, ProjectNotFoundError, StoreUnavailableError
from .fingerprint import compute_content_hash
from .keywords import KeywordExtractor, ExtractionResult, detect_technologies, detect_topics
from .models import (
    MediaItem,
    RawProjectRecord,
    SummaryProjection,
    Section,
    SectionKind,
    MediaContext,
    ProjectIndex,
    ProjectSummary,
    ScoredSection,
    CacheStats,
    BatchIndexReport
)
from .project_indexer import ProjectIndexer, initialize_indexer, get_indexer, reset_indexer
from .search import SearchEngine, tokenize_query
from .sqlite_store import SQLiteProjectStore
from .store import ProjectStore, InMemoryProjectStore

__all__ = [
    # Parsing and extraction
    'DocumentParser',
    'flatten_text',
    'build_node',
    'KeywordExtractor',
    'ExtractionResult',
    'detect_technologies',
    'detect_topics',
    'compute_content_hash',

    # Cache, search and facade
    'IndexCache',
    'SearchEngine',
    'tokenize_query',
    'ProjectIndexer',
    'initialize_indexer',
    'get_indexer',
    'reset_indexer',

    # Stores
    'ProjectStore',
    'InMemoryProjectStore',
    'SQLiteProjectStore',

    # Models
    'MediaItem',
    'RawProjectRecord',
    'SummaryProjection',
    'Section',
    'SectionKind',
    'MediaContext',
    'ProjectIndex',
    'ProjectSummary',
    'ScoredSection',
    'CacheStats',
    'BatchIndexReport',

    # Errors
    'IndexerError',
    'ProjectNotFoundError',
    'StoreUnavailableError'
]
