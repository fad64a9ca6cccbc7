"""Embedder module for vector generation.

This module provides the embedding client used for both document chunks
and queries, its provider implementations and a factory.
"""

from .base import BaseEmbedder, HTTPEmbedder
from .factory import EmbedderFactory
from .providers import GeminiEmbedder, MockEmbedder, OpenAICompatibleEmbedder

__all__ = [
    "BaseEmbedder",
    "EmbedderFactory",
    "GeminiEmbedder",
    "HTTPEmbedder",
    "MockEmbedder",
    "OpenAICompatibleEmbedder",
]
