"""Chunker module: splits document text into bounded, ordered chunks."""

from .base import BaseChunker
from .boundary import split_paragraphs, split_sentences
from .fixed_size import FixedSizeChunker, chunk_text, wire_size

__all__ = [
    "BaseChunker",
    "FixedSizeChunker",
    "chunk_text",
    "split_paragraphs",
    "split_sentences",
    "wire_size",
]
