from abc import ABC, abstractmethod
from typing import Sequence

from ..core.embedding import ChunkEmbedding, EmbeddingRecord
from ..errors import CacheWriteError

# Width of the document_id column in SQL backends; SHA-256 hex ids use 64
MAX_DOCUMENT_ID_LENGTH = 128


class BaseEmbeddingCache(ABC):
    """
    Abstract base class for durable embedding caches.

    Records are keyed by (document_id, chunk_index). A document's batch is
    written as one unit, and ``exists`` only reports complete batches, so a
    caller that sees ``exists() is True`` can trust ``get_all`` to return
    every chunk of the document.
    """

    @abstractmethod
    async def exists(self, document_id: str) -> bool:
        """True iff a complete batch is stored for the document."""
        pass

    @abstractmethod
    async def get_all(self, document_id: str) -> list[ChunkEmbedding]:
        """All cached embeddings of the document, ordered by chunk index."""
        pass

    @abstractmethod
    async def put_batch(self, document_id: str, records: Sequence[EmbeddingRecord]) -> None:
        """Atomically replace the document's records with ``records``."""
        pass

    @abstractmethod
    async def delete(self, document_id: str) -> None:
        """Remove every record of the document."""
        pass

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> "BaseEmbeddingCache":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def validate_batch(document_id: str, records: Sequence[EmbeddingRecord]) -> list[EmbeddingRecord]:
    """Check a batch belongs to one document and covers indexes 0..n-1 once."""
    if len(document_id) > MAX_DOCUMENT_ID_LENGTH:
        raise CacheWriteError(
            f"Document id is longer than {MAX_DOCUMENT_ID_LENGTH} characters; "
            "use document_id_from_url or document_id_from_content",
            details={"document_id_length": len(document_id)},
        )
    ordered = sorted(records, key=lambda r: r.chunk_index)
    for position, record in enumerate(ordered):
        if record.document_id != document_id:
            raise CacheWriteError(
                f"Record for '{record.document_id}' in batch for '{document_id}'"
            )
        if record.chunk_index != position:
            raise CacheWriteError(
                f"Batch for '{document_id}' is not contiguous at index {position}"
            )
    return ordered
