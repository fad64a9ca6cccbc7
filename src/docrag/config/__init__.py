"""Configuration system for docrag."""

from .models import (
    CacheConfig,
    ChunkBoundary,
    ContextConfig,
    EmbeddingConfig,
    PipelineConfig,
    QueryMode,
    RankingConfig,
    RetrievalConfig,
    RetryPolicy,
    SelectionOrder,
    default_max_chunk_bytes,
)
from .settings import Settings, load_settings

__all__ = [
    "CacheConfig",
    "ChunkBoundary",
    "ContextConfig",
    "EmbeddingConfig",
    "PipelineConfig",
    "QueryMode",
    "RankingConfig",
    "RetrievalConfig",
    "RetryPolicy",
    "SelectionOrder",
    "Settings",
    "default_max_chunk_bytes",
    "load_settings",
]
