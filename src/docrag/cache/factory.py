"""Cache factory for creating embedding cache instances."""

from loguru import logger

from ..config.models import CacheConfig
from ..errors import ConfigurationError
from .base import BaseEmbeddingCache
from .in_memory import InMemoryEmbeddingCache
from .sqlite import SQLiteEmbeddingCache
from .sqlmodel import SQLModelEmbeddingCache


class CacheFactory:
    """Factory for creating embedding caches from a CacheConfig."""

    _backends = ("sqlite", "sqlmodel", "memory")

    @classmethod
    def create(cls, config: CacheConfig) -> BaseEmbeddingCache:
        """Create the configured cache backend.

        Raises:
            ConfigurationError: If the backend is unknown or misconfigured
        """
        backend = config.backend.lower()
        logger.debug(f"Creating embedding cache backend '{backend}'")

        if backend == "sqlite":
            return SQLiteEmbeddingCache(db_path=config.db_path)
        if backend == "sqlmodel":
            if not config.database_url:
                raise ConfigurationError(
                    "The sqlmodel cache backend requires database_url"
                )
            return SQLModelEmbeddingCache(config.database_url)
        if backend == "memory":
            return InMemoryEmbeddingCache()

        raise ConfigurationError(
            f"Unknown cache backend: '{config.backend}'. "
            f"Available backends: {', '.join(cls._backends)}"
        )

    @classmethod
    def list_types(cls) -> list[str]:
        return list(cls._backends)
