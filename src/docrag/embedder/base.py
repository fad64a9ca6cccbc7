"""Base embedder interface."""

import json
import math
from abc import ABC, abstractmethod
from typing import Any

import httpx
from loguru import logger

from ..config.models import EmbeddingConfig
from ..errors import (
    DeserializationError,
    PayloadTooLarge,
    ProviderTimeoutError,
    TransientProviderError,
    classify_http_error,
)


class BaseEmbedder(ABC):
    """Abstract base class for embedding generation.

    One embedder instance is built from one ``EmbeddingConfig`` and is used
    for both document chunks and queries, so both sides of a similarity
    comparison always come from the same provider and model.
    """

    def __init__(self, config: EmbeddingConfig):
        self.config = config
        self._dimension = config.dimension

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Generate the embedding of one text.

        Raises:
            PayloadTooLarge: If the request would exceed the payload ceiling
            ProviderError: If the provider call fails or times out
            DeserializationError: If the response is not a vector
        """
        pass

    @property
    def model(self) -> str:
        return self.config.model

    @property
    def dimension(self) -> int | None:
        """Vector size, configured or learned from the first response."""
        return self._dimension

    def _check_dimension(self, vector: list[float]) -> None:
        if self._dimension is None:
            self._dimension = len(vector)
        elif len(vector) != self._dimension:
            raise DeserializationError(
                f"Embedding has {len(vector)} dimensions, expected {self._dimension}",
                details={"model": self.model},
            )

    async def aclose(self) -> None:
        """Release network resources."""
        pass

    async def __aenter__(self) -> "BaseEmbedder":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


class HTTPEmbedder(BaseEmbedder):
    """Embedder backed by a JSON-over-HTTP provider.

    Subclasses describe the request and response shapes; this class owns the
    payload guard, the HTTP call and the mapping of failures to errors.

    Args:
        config: Provider configuration
        client: Optional pre-built ``httpx.AsyncClient`` (tests inject one with
            a mock transport). A client passed in is not closed by ``aclose``.
    """

    def __init__(self, config: EmbeddingConfig, client: httpx.AsyncClient | None = None):
        super().__init__(config)
        if not config.api_key:
            logger.warning(f"No API key configured for {type(self).__name__}")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=config.timeout)

    @property
    @abstractmethod
    def url(self) -> str:
        pass

    @abstractmethod
    def _headers(self) -> dict[str, str]:
        pass

    @abstractmethod
    def _build_payload(self, text: str) -> dict[str, Any]:
        pass

    @abstractmethod
    def _extract_vector(self, data: Any) -> Any:
        """Pull the raw vector out of the decoded response body."""
        pass

    def _serialize(self, text: str) -> bytes:
        """Serialize the request and enforce the payload ceiling locally."""
        body = json.dumps(self._build_payload(text), ensure_ascii=False).encode("utf-8")
        if len(body) > self.config.max_payload_bytes:
            raise PayloadTooLarge(len(body), self.config.max_payload_bytes)
        return body

    async def embed(self, text: str) -> list[float]:
        body = self._serialize(text)
        headers = {"Content-Type": "application/json", **self._headers()}

        try:
            response = await self.client.post(
                self.url,
                content=body,
                headers=headers,
                timeout=self.config.timeout,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"Embedding request timed out after {self.config.timeout}s",
                timeout=self.config.timeout,
                original_error=e,
            ) from e
        except httpx.TransportError as e:
            raise TransientProviderError(
                f"Embedding request to {self.url} failed",
                original_error=e,
            ) from e

        if not response.is_success:
            logger.error(
                f"Embedding provider returned {response.status_code}: {response.text[:500]}"
            )
            raise classify_http_error(
                response.status_code,
                response.text,
                dict(response.headers),
                details={"model": self.model},
            )

        return self._parse(response.text)

    def _parse(self, raw: str) -> list[float]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise DeserializationError(
                "Embedding response is not valid JSON", body=raw, original_error=e
            ) from e

        try:
            values = self._extract_vector(data)
        except (KeyError, IndexError, TypeError) as e:
            raise DeserializationError(
                f"Embedding response is missing the vector: {type(e).__name__}: {e}",
                body=raw,
                original_error=e,
            ) from e

        if not isinstance(values, list) or not values:
            raise DeserializationError("Embedding response vector is empty", body=raw)
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
            raise DeserializationError("Embedding response vector is not numeric", body=raw)

        try:
            vector = [float(v) for v in values]
        except OverflowError as e:
            raise DeserializationError(
                "Embedding response vector is not finite", body=raw, original_error=e
            ) from e
        if not all(math.isfinite(v) for v in vector):
            raise DeserializationError("Embedding response vector is not finite", body=raw)
        self._check_dimension(vector)
        return vector

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


