"""Core entities."""

from .chunk import DocumentChunk
from .embedding import ChunkEmbedding, EmbeddingRecord, ScoredChunk
from .identity import document_id_from_content, document_id_from_url
from .result import RetrievalResult

__all__ = [
    "ChunkEmbedding",
    "DocumentChunk",
    "EmbeddingRecord",
    "RetrievalResult",
    "ScoredChunk",
    "document_id_from_content",
    "document_id_from_url",
]
