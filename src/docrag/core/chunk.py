"""Chunk entity representing a segment of a document."""

from pydantic import BaseModel, Field


class DocumentChunk(BaseModel):
    """An ordered, size-bounded segment of a document's text.

    Attributes:
        index: 0-based position of the chunk; defines canonical ordering
        text: The chunk text (never empty)
    """

    index: int = Field(..., ge=0)
    text: str = Field(..., min_length=1)

    model_config = {"frozen": True}

    @property
    def byte_size(self) -> int:
        """UTF-8 size of the text, checked against the payload guard."""
        return len(self.text.encode("utf-8"))
