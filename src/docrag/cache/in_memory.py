from typing import Sequence

from ..core.embedding import ChunkEmbedding, EmbeddingRecord
from .base import BaseEmbeddingCache, validate_batch


class InMemoryEmbeddingCache(BaseEmbeddingCache):
    """
    Simple in-memory embedding cache.
    Not persistent; used as the test double for the durable stores.

    Attributes:
        writes: Number of put_batch calls that stored something
    """

    def __init__(self):
        self._store: dict[str, list[EmbeddingRecord]] = {}
        self.writes = 0

    async def exists(self, document_id: str) -> bool:
        return bool(self._store.get(document_id))

    async def get_all(self, document_id: str) -> list[ChunkEmbedding]:
        return [r.to_embedding() for r in self._store.get(document_id, [])]

    async def put_batch(self, document_id: str, records: Sequence[EmbeddingRecord]) -> None:
        if not records:
            return
        # Swapping the whole list keeps the write all-or-nothing
        self._store[document_id] = validate_batch(document_id, records)
        self.writes += 1

    async def delete(self, document_id: str) -> None:
        self._store.pop(document_id, None)
