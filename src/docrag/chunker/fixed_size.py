"""Fixed-size chunker implementation."""

import json
from typing import Iterator

from loguru import logger

from ..config.models import ChunkBoundary
from ..core.chunk import DocumentChunk
from ..errors import ChunkingError
from .base import BaseChunker
from .boundary import split_paragraphs, split_sentences


def wire_size(text: str) -> int:
    """UTF-8 size of ``text`` once escaped as a JSON string body.

    Newlines, quotes, backslashes and tabs take 2 bytes on the wire and other
    control characters 6, so this is never below the raw UTF-8 size.
    """
    return len(json.dumps(text, ensure_ascii=False)[1:-1].encode("utf-8"))


def _fixed_windows(text: str, max_chunk_bytes: int) -> Iterator[str]:
    """Yield contiguous windows whose wire size is at most ``max_chunk_bytes``.

    A window starts as ``max_chunk_bytes`` characters and is shrunk from the
    end until it fits; for plain ASCII text no shrinking happens.
    """
    start = 0
    length = len(text)

    while start < length:
        end = min(start + max_chunk_bytes, length)
        overflow = wire_size(text[start:end]) - max_chunk_bytes

        while overflow > 0:
            # An escaped character is at most 6 bytes
            end -= max(1, -(-overflow // 6))
            if end <= start:
                raise ChunkingError(
                    "A single character exceeds max_chunk_bytes",
                    details={"position": start, "max_chunk_bytes": max_chunk_bytes},
                )
            overflow = wire_size(text[start:end]) - max_chunk_bytes

        yield text[start:end]
        start = end


class FixedSizeChunker(BaseChunker):
    """Chunks text into contiguous windows bounded by size.

    Windows never overlap and may cut through a word. With a boundary mode
    the text is first split into paragraphs or sentences, which are packed
    greedily into windows; a segment larger than the bound is sliced.

    Attributes:
        max_chunk_bytes: Maximum wire size (escaped UTF-8) of one chunk
        boundary: Optional boundary-aware pre-pass
    """

    def __init__(
        self,
        max_chunk_bytes: int,
        boundary: ChunkBoundary | str = ChunkBoundary.NONE,
    ):
        """Initialize the chunker.

        Args:
            max_chunk_bytes: Maximum size per chunk; keep it below the
                provider payload ceiling to leave room for the request envelope
            boundary: "none", "paragraph" or "sentence"

        Raises:
            ValueError: If max_chunk_bytes <= 0 or boundary is unknown
        """
        if max_chunk_bytes <= 0:
            raise ValueError("max_chunk_bytes must be positive")

        self.max_chunk_bytes = max_chunk_bytes
        self.boundary = ChunkBoundary(boundary)

    def split(self, text: str) -> list[DocumentChunk]:
        """Split text into chunks.

        Whitespace-only windows are dropped and the survivors are indexed
        contiguously from 0.

        Raises:
            ChunkingError: If text is not a string or cannot be UTF-8 encoded
        """
        if not isinstance(text, str):
            raise ChunkingError(
                f"Expected document text as str, got {type(text).__name__}"
            )
        try:
            text.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ChunkingError(
                "Document text is not valid Unicode",
                details={"position": e.start},
                original_error=e,
            ) from e

        chunks = []
        for window in self._windows(text):
            if window.strip():
                chunks.append(DocumentChunk(index=len(chunks), text=window))

        logger.debug(
            f"Split {len(text)} chars into {len(chunks)} chunks "
            f"(max_chunk_bytes={self.max_chunk_bytes}, boundary={self.boundary.value})"
        )
        return chunks

    def _windows(self, text: str) -> Iterator[str]:
        if self.boundary is ChunkBoundary.NONE:
            yield from _fixed_windows(text, self.max_chunk_bytes)
            return

        segments = (
            split_paragraphs(text)
            if self.boundary is ChunkBoundary.PARAGRAPH
            else split_sentences(text)
        )

        buffer = ""
        for segment in segments:
            if wire_size(buffer + segment) <= self.max_chunk_bytes:
                buffer += segment
                continue

            if buffer:
                yield buffer
                buffer = ""

            if wire_size(segment) <= self.max_chunk_bytes:
                buffer = segment
            else:
                yield from _fixed_windows(segment, self.max_chunk_bytes)

        if buffer:
            yield buffer


def chunk_text(text: str, max_chunk_bytes: int) -> list[DocumentChunk]:
    """Split text into fixed-size chunks of at most ``max_chunk_bytes`` on the wire."""
    return FixedSizeChunker(max_chunk_bytes).split(text)
