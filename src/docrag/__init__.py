"""
docrag - document-scoped retrieval core.

Chunks an extracted document, embeds every chunk concurrently (once per
document, thanks to a durable cache), ranks the chunks against the user's
questions and assembles the relevant ones into a sanitized context.
"""

__version__ = "0.1.0"

from .cache import (
    BaseEmbeddingCache,
    CacheFactory,
    InMemoryEmbeddingCache,
    SQLiteEmbeddingCache,
    SQLModelEmbeddingCache,
)
from .chunker import BaseChunker, FixedSizeChunker, chunk_text
from .config import RetrievalConfig, Settings, load_settings
from .context import NO_CONTEXT_SENTINEL, ContextAssembler, SanitizationRule, Sanitizer
from .core import (
    ChunkEmbedding,
    DocumentChunk,
    EmbeddingRecord,
    RetrievalResult,
    ScoredChunk,
    document_id_from_content,
    document_id_from_url,
)
from .embedder import BaseEmbedder, EmbedderFactory, GeminiEmbedder, MockEmbedder, OpenAICompatibleEmbedder
from .errors import DocRAGError
from .pipeline import EmbeddingPipeline, PipelineStats
from .retrieval import ContextRetriever, SimilarityRanker
from .utils import cosine_similarity

__all__ = [
    "__version__",
    # Core
    "ChunkEmbedding",
    "DocumentChunk",
    "EmbeddingRecord",
    "RetrievalResult",
    "ScoredChunk",
    "document_id_from_content",
    "document_id_from_url",
    # Components
    "BaseChunker",
    "FixedSizeChunker",
    "chunk_text",
    "BaseEmbedder",
    "EmbedderFactory",
    "GeminiEmbedder",
    "MockEmbedder",
    "OpenAICompatibleEmbedder",
    "BaseEmbeddingCache",
    "CacheFactory",
    "InMemoryEmbeddingCache",
    "SQLiteEmbeddingCache",
    "SQLModelEmbeddingCache",
    "EmbeddingPipeline",
    "PipelineStats",
    "SimilarityRanker",
    "cosine_similarity",
    "ContextAssembler",
    "NO_CONTEXT_SENTINEL",
    "SanitizationRule",
    "Sanitizer",
    # Service
    "ContextRetriever",
    # Configuration
    "RetrievalConfig",
    "Settings",
    "load_settings",
    # Errors
    "DocRAGError",
]
