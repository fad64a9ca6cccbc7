"""
Tests for the concurrent embedding pipeline.

These tests verify:
- Cache idempotence (no provider calls on a repeated document)
- Index order restored regardless of completion order
- The concurrency bound
- Fail-fast with cancellation and no cache writes
- Timeouts, retries and error wrapping
"""

import asyncio

import httpx
import pytest

from docrag.cache import InMemoryEmbeddingCache
from docrag.config import PipelineConfig, RetrievalConfig, RetryPolicy
from docrag.embedder import GeminiEmbedder
from docrag.errors import (
    PayloadTooLarge,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    TransientProviderError,
)
from docrag.pipeline import EmbeddingPipeline
from tests.utils.fakes import ScriptedEmbedder

TEXT = "aaaa bbbb cccc"  # three 5-byte windows: "aaaa ", "bbbb ", "cccc"


def _pipeline(embedder, cache=None, **config) -> EmbeddingPipeline:
    config.setdefault("max_chunk_bytes", 5)
    return EmbeddingPipeline(embedder, cache or InMemoryEmbeddingCache(), PipelineConfig(**config))


class TestCaching:

    @pytest.mark.asyncio
    async def test_miss_then_hit(self):
        embedder = ScriptedEmbedder(vectors={"aaaa ": [1.0, 0.0], "bbbb ": [0.0, 1.0], "cccc": [1.0, 1.0]})
        cache = InMemoryEmbeddingCache()
        pipeline = _pipeline(embedder, cache)

        first = await pipeline.get_or_compute_embeddings("doc", TEXT)
        assert [e.chunk for e in first] == ["aaaa ", "bbbb ", "cccc"]
        assert [e.vector for e in first] == [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]]
        assert len(embedder.calls) == 3
        assert cache.writes == 1
        assert pipeline.last_stats.cache_hit is False
        assert pipeline.last_stats.provider_calls == 3

        second = await pipeline.get_or_compute_embeddings("doc", TEXT)
        assert second == first
        assert len(embedder.calls) == 3
        assert cache.writes == 1
        assert pipeline.last_stats.cache_hit is True
        assert pipeline.last_stats.provider_calls == 0

    @pytest.mark.asyncio
    async def test_cache_hit_skips_chunking(self, make_records):
        cache = InMemoryEmbeddingCache()
        await cache.put_batch("doc", make_records("doc", 2))
        embedder = ScriptedEmbedder()

        # The raw text is not even looked at on a hit
        result = await _pipeline(embedder, cache).get_or_compute_embeddings("doc", "")
        assert [e.chunk for e in result] == ["chunk 0", "chunk 1"]
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_empty_document(self):
        embedder = ScriptedEmbedder()
        cache = InMemoryEmbeddingCache()
        result = await _pipeline(embedder, cache).get_or_compute_embeddings("doc", "   \n\n  ")

        assert result == []
        assert embedder.calls == []
        assert cache.writes == 0


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_results_ordered_by_index(self):
        # The first chunk finishes last
        embedder = ScriptedEmbedder(delays={"aaaa ": 0.05, "bbbb ": 0.02, "cccc": 0.0})
        result = await _pipeline(embedder).get_or_compute_embeddings("doc", TEXT)

        assert [e.index for e in result] == [0, 1, 2]
        assert embedder.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        embedder = ScriptedEmbedder(delay=0.01)
        text = "".join(f"{i:04d} " for i in range(30))
        result = await _pipeline(embedder, max_concurrent_calls=4).get_or_compute_embeddings("doc", text)

        assert len(result) == 30
        assert embedder.max_in_flight <= 4

    @pytest.mark.asyncio
    async def test_same_document_deduplicated(self):
        embedder = ScriptedEmbedder(delay=0.01)
        cache = InMemoryEmbeddingCache()
        pipeline = _pipeline(embedder, cache)

        first, second = await asyncio.gather(
            pipeline.get_or_compute_embeddings("doc", TEXT),
            pipeline.get_or_compute_embeddings("doc", TEXT),
        )

        assert first == second
        assert len(embedder.calls) == 3
        assert cache.writes == 1
        assert pipeline._locks == {}

    @pytest.mark.asyncio
    async def test_different_documents_independent(self):
        embedder = ScriptedEmbedder(delay=0.01)
        cache = InMemoryEmbeddingCache()
        pipeline = _pipeline(embedder, cache)

        await asyncio.gather(
            pipeline.get_or_compute_embeddings("a", TEXT),
            pipeline.get_or_compute_embeddings("b", TEXT),
        )
        assert len(embedder.calls) == 6
        assert cache.writes == 2


class StaggeredFailureEmbedder(ScriptedEmbedder):
    """Chunk 1 fails first; chunk 0 fails right after it."""

    def __init__(self):
        super().__init__()
        self.first_failed = asyncio.Event()

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text == "bbbb ":
            self.first_failed.set()
            raise RateLimitError("bbbb rejected", status_code=429)
        if text == "aaaa ":
            await self.first_failed.wait()
            raise TransientProviderError("aaaa dropped", status_code=502)
        return list(self.default)


class TestFailFast:

    @pytest.mark.asyncio
    async def test_failure_aborts_without_cache_write(self):
        embedder = ScriptedEmbedder(fail_on={"bbbb "}, delay=0.5, delays={"bbbb ": 0.0})
        cache = InMemoryEmbeddingCache()

        with pytest.raises(ProviderError) as exc_info:
            await _pipeline(embedder, cache).get_or_compute_embeddings("doc", TEXT)

        assert exc_info.value.details["chunk_index"] == 1
        assert exc_info.value.body == "boom"
        assert cache.writes == 0
        assert not await cache.exists("doc")
        assert embedder.cancelled == 2

    @pytest.mark.asyncio
    async def test_earliest_failure_wins_over_lower_index(self):
        embedder = StaggeredFailureEmbedder()

        with pytest.raises(RateLimitError) as exc_info:
            await _pipeline(embedder).get_or_compute_embeddings("doc", TEXT)

        assert exc_info.value.details["chunk_index"] == 1

    @pytest.mark.asyncio
    async def test_failed_run_is_retryable_from_scratch(self):
        embedder = ScriptedEmbedder(fail_on={"cccc"})
        cache = InMemoryEmbeddingCache()
        pipeline = _pipeline(embedder, cache)

        with pytest.raises(ProviderError):
            await pipeline.get_or_compute_embeddings("doc", TEXT)

        embedder.fail_on.clear()
        result = await pipeline.get_or_compute_embeddings("doc", TEXT)
        assert len(result) == 3
        assert cache.writes == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self):
        embedder = ScriptedEmbedder(fail_on={"aaaa "}, error=RuntimeError("socket closed"))

        with pytest.raises(ProviderError) as exc_info:
            await _pipeline(embedder).get_or_compute_embeddings("doc", TEXT)

        assert isinstance(exc_info.value.original_error, RuntimeError)
        assert exc_info.value.details["chunk_index"] == 0
        assert exc_info.value.stage == "embedding"

    @pytest.mark.asyncio
    async def test_timeout_is_provider_error(self):
        embedder = ScriptedEmbedder(delay=1.0)
        cache = InMemoryEmbeddingCache()

        with pytest.raises(ProviderTimeoutError) as exc_info:
            await _pipeline(embedder, cache, call_timeout=0.05).get_or_compute_embeddings("doc", TEXT)

        assert isinstance(exc_info.value, ProviderError)
        assert cache.writes == 0

    @pytest.mark.asyncio
    async def test_payload_too_large_propagates(self, mock_embedder):
        mock_embedder.config = mock_embedder.config.model_copy(update={"max_payload_bytes": 3})
        with pytest.raises(PayloadTooLarge):
            await _pipeline(mock_embedder).get_or_compute_embeddings("doc", TEXT)


class FlakyEmbedder(ScriptedEmbedder):
    """Fails each text with a rate limit the first ``failures`` times."""

    def __init__(self, failures: int, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures
        self.attempts: dict[str, int] = {}

    async def embed(self, text: str) -> list[float]:
        self.attempts[text] = self.attempts.get(text, 0) + 1
        if self.attempts[text] <= self.failures:
            raise RateLimitError("slow down", status_code=429)
        return await super().embed(text)


class TestRetry:

    @pytest.mark.asyncio
    async def test_retry_recovers(self):
        embedder = FlakyEmbedder(failures=1)
        retry = RetryPolicy(max_attempts=2, base_delay=0.0, max_delay=0.0, jitter=0.0)
        pipeline = _pipeline(embedder, retry=retry)

        result = await pipeline.get_or_compute_embeddings("doc", TEXT)
        assert len(result) == 3
        assert pipeline.last_stats.provider_calls == 6

    @pytest.mark.asyncio
    async def test_default_is_fail_fast(self):
        embedder = FlakyEmbedder(failures=1)
        with pytest.raises(RateLimitError):
            await _pipeline(embedder).get_or_compute_embeddings("doc", TEXT)

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self):
        embedder = ScriptedEmbedder(fail_on={"aaaa "}, error=PayloadTooLarge(20, 10))
        retry = RetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0, jitter=0.0)

        with pytest.raises(PayloadTooLarge):
            await _pipeline(embedder, retry=retry).get_or_compute_embeddings("doc", TEXT)
        assert embedder.calls.count("aaaa ") == 1


class TestPayloadBound:

    @pytest.mark.asyncio
    async def test_line_dense_text_with_default_config(self):
        config = RetrievalConfig()
        sizes = []

        def handler(request: httpx.Request) -> httpx.Response:
            sizes.append(len(request.content))
            return httpx.Response(200, json={"embedding": {"values": [1.0, 0.0]}})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        embedder = GeminiEmbedder(config.embedding, client=client)
        pipeline = EmbeddingPipeline(embedder, InMemoryEmbeddingCache(), config.pipeline)
        text = "".join(f"r{i % 100}\n" for i in range(6000))

        result = await pipeline.get_or_compute_embeddings("doc", text)

        assert len(result) > 1
        assert max(sizes) <= config.embedding.max_payload_bytes
        assert "".join(e.chunk for e in result) == text
