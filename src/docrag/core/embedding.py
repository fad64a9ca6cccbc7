"""Embedding entities: in-flight, persisted and scored forms."""

from pydantic import BaseModel, Field


class ChunkEmbedding(BaseModel):
    """A chunk paired with its vector representation.

    Attributes:
        index: Position of the chunk within its document
        chunk: The chunk text
        vector: Embedding components
    """

    index: int = Field(..., ge=0)
    chunk: str
    vector: list[float]

    model_config = {"frozen": True}

    @property
    def dimension(self) -> int:
        return len(self.vector)


class EmbeddingRecord(BaseModel):
    """Persisted form of a ChunkEmbedding, keyed by (document_id, chunk_index)."""

    document_id: str = Field(..., min_length=1)
    chunk_index: int = Field(..., ge=0)
    text: str
    vector: list[float]

    model_config = {"frozen": True}

    @classmethod
    def from_embedding(cls, document_id: str, embedding: ChunkEmbedding) -> "EmbeddingRecord":
        return cls(
            document_id=document_id,
            chunk_index=embedding.index,
            text=embedding.chunk,
            vector=embedding.vector,
        )

    def to_embedding(self) -> ChunkEmbedding:
        return ChunkEmbedding(index=self.chunk_index, chunk=self.text, vector=self.vector)


class ScoredChunk(BaseModel):
    """A chunk embedding with its similarity to the query, in [-1, 1]."""

    embedding: ChunkEmbedding
    score: float = Field(..., ge=-1.0, le=1.0)

    model_config = {"frozen": True}

    @property
    def index(self) -> int:
        return self.embedding.index

    @property
    def text(self) -> str:
        return self.embedding.chunk
