"""Test doubles for the embedding provider."""

import asyncio

from docrag.config import EmbeddingConfig
from docrag.embedder import BaseEmbedder
from docrag.errors import ProviderError


class ScriptedEmbedder(BaseEmbedder):
    """Embedder returning preset vectors, with optional failures and delays.

    Tracks calls, the peak number of concurrent calls and how many calls were
    cancelled while in flight.
    """

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        fail_on: set[str] | None = None,
        error: Exception | None = None,
        delays: dict[str, float] | None = None,
        delay: float = 0.0,
    ):
        super().__init__(EmbeddingConfig(provider="scripted", model="scripted"))
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.fail_on = fail_on or set()
        self.error = error or ProviderError("scripted failure", status_code=500, body="boom")
        self.delays = delays or {}
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = 0

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(text, self.delay))
            if text in self.fail_on:
                raise self.error
            return list(self.vectors.get(text, self.default))
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1
