"""Base chunker interface."""

from abc import ABC, abstractmethod

from ..core.chunk import DocumentChunk


class BaseChunker(ABC):
    """Abstract base class for text chunking.

    Chunkers split a document's extracted text into ordered segments small
    enough to be embedded in one provider call.
    """

    @abstractmethod
    def split(self, text: str) -> list[DocumentChunk]:
        """Split text into chunks.

        Args:
            text: Extracted document text

        Returns:
            Chunks indexed contiguously from 0 in text order
        """
        pass
