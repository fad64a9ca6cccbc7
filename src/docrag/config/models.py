"""Configuration models for the retrieval core.

One ``RetrievalConfig`` describes a whole retrieval setup. Its single
``EmbeddingConfig`` is what the embedder factory consumes, so document chunks
and queries are always embedded under the same provider and model.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, model_validator

from docrag.errors import ConfigurationError
from docrag.utils.retry import RetryConfig

if TYPE_CHECKING:
    from .settings import Settings


class SelectionOrder(str, Enum):
    """How the top-N cap and the similarity threshold are combined.

    Attributes:
        CAP_THEN_FILTER: take the N best chunks, then drop those not above the threshold
        FILTER_THEN_CAP: drop chunks not above the threshold, then take the N best
    """
    CAP_THEN_FILTER = "cap_then_filter"
    FILTER_THEN_CAP = "filter_then_cap"


class QueryMode(str, Enum):
    """How multiple questions are turned into query embeddings."""
    COMBINED = "combined"
    PER_QUESTION = "per_question"


class ChunkBoundary(str, Enum):
    """Optional boundary-aware pre-pass applied before fixed-size windows."""
    NONE = "none"
    PARAGRAPH = "paragraph"
    SENTENCE = "sentence"


def default_max_chunk_bytes(max_payload_bytes: int) -> int:
    """Chunk bound leaving a 10% margin for the request envelope."""
    return int(max_payload_bytes * 0.9)


class EmbeddingConfig(BaseModel):
    """Embedding provider configuration.

    Attributes:
        provider: "gemini", "openai" or "mock"
        model: Model identifier sent with every request
        api_key: Provider credential (never logged)
        base_url: Optional endpoint override
        max_payload_bytes: Hard ceiling on the serialized request body
        timeout: Per-call timeout in seconds
        dimension: Expected vector size; learned from the first response if unset
    """

    provider: str = "gemini"
    model: str = "text-embedding-004"
    api_key: Optional[str] = Field(default=None, repr=False)
    base_url: Optional[str] = None
    max_payload_bytes: int = Field(default=10_000, gt=0)
    timeout: float = Field(default=30.0, gt=0)
    dimension: Optional[int] = Field(default=None, gt=0)

    model_config = {"frozen": True}


class RetryPolicy(BaseModel):
    """Per-chunk retry policy. One attempt means fail fast."""

    max_attempts: int = Field(default=1, ge=1)
    base_delay: float = Field(default=0.5, ge=0)
    max_delay: float = Field(default=10.0, ge=0)
    jitter: float = Field(default=0.1, ge=0, le=1)

    def to_retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=max(self.max_delay, self.base_delay),
            jitter=self.jitter,
        )


class PipelineConfig(BaseModel):
    """Concurrent embedding pipeline configuration."""

    max_chunk_bytes: int = Field(default=9_000, gt=0)
    max_concurrent_calls: int = Field(default=8, ge=1)
    call_timeout: float = Field(default=30.0, gt=0)
    boundary: ChunkBoundary = ChunkBoundary.NONE
    retry: RetryPolicy = Field(default_factory=RetryPolicy)


class RankingConfig(BaseModel):
    """Similarity ranking configuration."""

    top_n: int = Field(default=5, ge=0)
    threshold: float = Field(default=0.4, ge=-1.0, le=1.0)
    selection_order: SelectionOrder = SelectionOrder.CAP_THEN_FILTER


class ContextConfig(BaseModel):
    """Context assembly configuration."""

    separator: str = "\n\n---\n\n"
    max_context_chars: Optional[int] = Field(default=None, gt=0)
    rules_file: Optional[str] = None


class CacheConfig(BaseModel):
    """Embedding cache backend configuration."""

    backend: str = "sqlite"
    db_path: str = "storage/embeddings.db"
    database_url: Optional[str] = None


class RetrievalConfig(BaseModel):
    """Complete retrieval configuration.

    Attributes:
        embedding: Provider settings shared by chunk and query embedding
        pipeline: Chunking and concurrency settings
        ranking: Top-N / threshold policy
        context: Context assembly settings
        cache: Cache backend settings
        query_mode: Combined or per-question query embedding
        question_separator: Joiner used by the combined query mode
    """

    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    query_mode: QueryMode = QueryMode.COMBINED
    question_separator: str = "\n"

    @model_validator(mode="after")
    def _check_chunk_bound(self) -> "RetrievalConfig":
        if self.pipeline.max_chunk_bytes >= self.embedding.max_payload_bytes:
            raise ConfigurationError(
                "max_chunk_bytes must be strictly below the provider payload ceiling",
                details={
                    "max_chunk_bytes": self.pipeline.max_chunk_bytes,
                    "max_payload_bytes": self.embedding.max_payload_bytes,
                },
            )
        return self

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RetrievalConfig":
        """Build a configuration from environment settings."""
        max_chunk_bytes = settings.MAX_CHUNK_BYTES or default_max_chunk_bytes(
            settings.MAX_PAYLOAD_BYTES
        )
        return cls(
            embedding=EmbeddingConfig(
                provider=settings.EMBEDDING_PROVIDER,
                model=settings.EMBEDDING_MODEL,
                api_key=settings.EMBEDDING_API_KEY,
                base_url=settings.EMBEDDING_BASE_URL,
                max_payload_bytes=settings.MAX_PAYLOAD_BYTES,
                timeout=settings.REQUEST_TIMEOUT,
            ),
            pipeline=PipelineConfig(
                max_chunk_bytes=max_chunk_bytes,
                max_concurrent_calls=settings.MAX_CONCURRENT_CALLS,
                call_timeout=settings.REQUEST_TIMEOUT,
                retry=RetryPolicy(max_attempts=settings.EMBED_MAX_ATTEMPTS),
            ),
            ranking=RankingConfig(
                top_n=settings.TOP_N,
                threshold=settings.SIMILARITY_THRESHOLD,
                selection_order=SelectionOrder(settings.SELECTION_ORDER),
            ),
            cache=CacheConfig(
                backend=settings.CACHE_BACKEND,
                db_path=settings.CACHE_DB_PATH,
                database_url=settings.CACHE_DATABASE_URL,
            ),
            query_mode=QueryMode(settings.QUERY_MODE),
        )
