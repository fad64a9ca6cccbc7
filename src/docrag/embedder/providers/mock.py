"""Mock embedder for testing (no external API)."""

import hashlib
import random
import re

from loguru import logger

from ...config.models import EmbeddingConfig
from ...errors import PayloadTooLarge
from ..base import BaseEmbedder

_TOKEN_RE = re.compile(r"\w+")


class MockEmbedder(BaseEmbedder):
    """Generates deterministic hashed bag-of-words embeddings for testing.

    WARNING: This embedder is NOT suitable for production use.

    Every lower-cased word is hashed (SHA-256) into one of ``dimension``
    buckets, so texts sharing vocabulary get a positive cosine similarity and
    identical texts always map to identical unit vectors across processes.
    Text without any word characters gets a pseudo-random vector seeded from
    its hash. The payload guard is applied to the raw text so oversize
    behaviour matches the real providers.

    Attributes:
        calls: Number of embed() invocations, handy for cache assertions
    """

    def __init__(self, config: EmbeddingConfig | None = None, client=None):
        config = config or EmbeddingConfig(provider="mock", model="mock", dimension=256)
        if config.dimension is None:
            config = config.model_copy(update={"dimension": 256})
        super().__init__(config)
        self.calls = 0
        logger.warning(
            "Using MockEmbedder - NOT for production use! "
            "Replace with real embedder for actual applications."
        )

    async def embed(self, text: str) -> list[float]:
        size = len(text.encode("utf-8"))
        if size > self.config.max_payload_bytes:
            raise PayloadTooLarge(size, self.config.max_payload_bytes)

        self.calls += 1
        vec = [0.0] * self._dimension
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            vec[int.from_bytes(digest[:4], "big") % self._dimension] += 1.0

        if not any(vec):
            seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
            rng = random.Random(seed)
            vec = [rng.gauss(0, 1) for _ in range(self._dimension)]

        # Normalize to unit length
        magnitude = sum(x**2 for x in vec) ** 0.5
        return [x / magnitude for x in vec]
