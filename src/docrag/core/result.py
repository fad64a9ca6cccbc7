"""Result entity returned by the retrieval service."""

from pydantic import BaseModel, Field

from .embedding import ScoredChunk


class RetrievalResult(BaseModel):
    """Outcome of one retrieval request.

    Attributes:
        document_id: Identity the embeddings were cached under
        context: Assembled context, or the no-context sentinel
        selected: Chunks that made it into the context, best first
        cache_hit: Whether the document embeddings came from the cache
        chunk_count: Number of chunks the document has
    """

    document_id: str
    context: str
    selected: list[ScoredChunk] = Field(default_factory=list)
    cache_hit: bool = False
    chunk_count: int = 0

    @property
    def has_context(self) -> bool:
        return bool(self.selected)
