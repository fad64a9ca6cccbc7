"""Durable embedding caches keyed by (document_id, chunk_index)."""

from .base import MAX_DOCUMENT_ID_LENGTH, BaseEmbeddingCache
from .factory import CacheFactory
from .in_memory import InMemoryEmbeddingCache
from .sqlite import SQLiteEmbeddingCache
from .sqlmodel import SQLModelEmbeddingCache

__all__ = [
    "MAX_DOCUMENT_ID_LENGTH",
    "BaseEmbeddingCache",
    "CacheFactory",
    "InMemoryEmbeddingCache",
    "SQLiteEmbeddingCache",
    "SQLModelEmbeddingCache",
]
