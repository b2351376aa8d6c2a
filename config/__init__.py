"""Configuration module for the project content index.

Provides indexer settings and project store configuration.
"""

from .settings import (
    IndexerConfig,
    SearchWeights,
    load_config
)
from .store import (
    StoreConfig,
    StoreType,
    create_store
)

__all__ = [
    'IndexerConfig',
    'SearchWeights',
    'load_config',
    'StoreConfig',
    'StoreType',
    'create_store'
]
