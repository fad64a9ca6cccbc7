"""Embedding provider implementations."""

from .gemini import GeminiEmbedder
from .mock import MockEmbedder
from .openai_compatible import OpenAICompatibleEmbedder

__all__ = ["GeminiEmbedder", "MockEmbedder", "OpenAICompatibleEmbedder"]
