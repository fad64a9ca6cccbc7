"""Embedder factory for creating embedder instances."""

import httpx
from loguru import logger

from ..config.models import EmbeddingConfig
from ..errors import ConfigurationError
from .base import BaseEmbedder
from .providers.gemini import GeminiEmbedder
from .providers.mock import MockEmbedder
from .providers.openai_compatible import OpenAICompatibleEmbedder


class EmbedderFactory:
    """Factory for creating embedder instances from an EmbeddingConfig.

    This factory maintains a registry of available providers keyed by the
    ``provider`` field of the configuration.
    """

    _registry: dict[str, type[BaseEmbedder]] = {
        "gemini": GeminiEmbedder,
        "openai": OpenAICompatibleEmbedder,
        "mock": MockEmbedder,
    }

    @classmethod
    def create(
        cls,
        config: EmbeddingConfig,
        client: httpx.AsyncClient | None = None,
    ) -> BaseEmbedder:
        """Create an embedder for the configured provider.

        Args:
            config: Provider configuration
            client: Optional shared HTTP client

        Returns:
            Embedder instance

        Raises:
            ConfigurationError: If the provider is not registered
        """
        if config.provider not in cls._registry:
            available = ", ".join(cls._registry.keys())
            raise ConfigurationError(
                f"Unknown embedding provider: '{config.provider}'. "
                f"Available providers: {available}"
            )

        embedder_class = cls._registry[config.provider]
        logger.debug(f"Creating {embedder_class.__name__} for model {config.model}")

        return embedder_class(config, client=client)

    @classmethod
    def register(cls, provider: str, embedder_class: type[BaseEmbedder]):
        """Register a new provider.

        Raises:
            TypeError: If embedder_class is not a subclass of BaseEmbedder
        """
        if not issubclass(embedder_class, BaseEmbedder):
            raise TypeError(
                f"{embedder_class.__name__} must be a subclass of BaseEmbedder"
            )

        cls._registry[provider] = embedder_class
        logger.info(f"Registered embedding provider '{provider}': {embedder_class.__name__}")

    @classmethod
    def list_types(cls) -> list[str]:
        """Get list of available providers."""
        return list(cls._registry.keys())
