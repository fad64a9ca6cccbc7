"""
Concurrent embedding pipeline.

Turns a raw document into its ordered chunk embeddings, computing them at
most once per document id:

1. cache hit: the cached records are returned, nothing is chunked or embedded
2. cache miss: the text is chunked and every chunk is embedded concurrently
   under a fixed concurrency bound
3. the first failed chunk cancels the outstanding calls and nothing is cached
4. on success the whole batch is written to the cache in one unit
"""

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from loguru import logger

from ..cache.base import BaseEmbeddingCache
from ..chunker.base import BaseChunker
from ..chunker.fixed_size import FixedSizeChunker
from ..config.models import PipelineConfig
from ..core.chunk import DocumentChunk
from ..core.embedding import ChunkEmbedding, EmbeddingRecord
from ..embedder.base import BaseEmbedder
from ..errors import DocRAGError, ProviderError, ProviderTimeoutError
from ..utils.retry import execute_with_retry


@dataclass
class PipelineStats:
    """Statistics of one ``get_or_compute_embeddings`` run."""

    request_id: str
    document_id: str
    chunks: int = 0
    provider_calls: int = 0
    cache_hit: bool = False
    duration: float = 0.0


class EmbeddingPipeline:
    """
    Produces the embeddings of a document, reusing the cache when possible.

    The embedder and the cache are constructed once by the caller and shared
    across requests. Concurrent requests for the same document inside one
    pipeline are serialized, so the second one is served from the cache.

    Attributes:
        embedder: Provider client used for every chunk
        cache: Durable store for completed batches
        config: Chunk bound, concurrency bound, timeout and retry policy
        last_stats: Statistics of the most recent run
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        cache: BaseEmbeddingCache,
        config: PipelineConfig | None = None,
        chunker: BaseChunker | None = None,
    ):
        self.embedder = embedder
        self.cache = cache
        self.config = config or PipelineConfig()
        self.chunker = chunker or FixedSizeChunker(
            self.config.max_chunk_bytes, self.config.boundary
        )
        self._retry_config = self.config.retry.to_retry_config()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self.last_stats: PipelineStats | None = None

    async def get_or_compute_embeddings(
        self, document_id: str, raw_text: str
    ) -> list[ChunkEmbedding]:
        """
        Return the document's chunk embeddings ordered by chunk index.

        Args:
            document_id: Stable identity the embeddings are cached under
            raw_text: Full document text (only chunked on a cache miss)

        Returns:
            Embeddings with indexes 0..n-1; empty for a blank document

        Raises:
            ChunkingError: If the text cannot be chunked
            PayloadTooLarge: If a chunk request exceeds the payload ceiling
            ProviderError: If any chunk fails (the first failure wins)
            CacheError: If the cache cannot be read or written
        """
        stats = PipelineStats(request_id=uuid.uuid4().hex[:8], document_id=document_id)
        start = time.perf_counter()

        try:
            async with self._document_lock(document_id):
                embeddings = await self._run(document_id, raw_text, stats)
        except DocRAGError as e:
            logger.error(f"[{stats.request_id}] Embedding {document_id} failed: {e}")
            raise
        finally:
            stats.duration = time.perf_counter() - start
            self.last_stats = stats

        logger.info(
            f"[{stats.request_id}] {document_id}: {stats.chunks} chunks, "
            f"{stats.provider_calls} provider calls, cache_hit={stats.cache_hit}, "
            f"{stats.duration:.3f}s"
        )
        return embeddings

    async def _run(
        self, document_id: str, raw_text: str, stats: PipelineStats
    ) -> list[ChunkEmbedding]:
        # Re-checked under the lock: a concurrent request may have filled it
        if await self.cache.exists(document_id):
            cached = await self.cache.get_all(document_id)
            stats.cache_hit = True
            stats.chunks = len(cached)
            logger.debug(f"[{stats.request_id}] Cache hit for {document_id}")
            return cached

        chunks = self.chunker.split(raw_text)
        stats.chunks = len(chunks)
        if not chunks:
            logger.info(f"[{stats.request_id}] {document_id} has no text to embed")
            return []

        logger.debug(
            f"[{stats.request_id}] Embedding {len(chunks)} chunks of {document_id} "
            f"(max {self.config.max_concurrent_calls} concurrent calls)"
        )
        embeddings = await self._embed_all(chunks, stats)

        await self.cache.put_batch(
            document_id,
            [EmbeddingRecord.from_embedding(document_id, e) for e in embeddings],
        )
        return embeddings

    async def _embed_all(
        self, chunks: list[DocumentChunk], stats: PipelineStats
    ) -> list[ChunkEmbedding]:
        semaphore = asyncio.Semaphore(self.config.max_concurrent_calls)
        # Appended as chunks fail, so failures[0] is the earliest
        failures: list[DocRAGError] = []
        tasks = [
            asyncio.create_task(self._embed_chunk(chunk, semaphore, stats, failures))
            for chunk in chunks
        ]

        try:
            _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            await self._cancel(tasks)
            raise

        if failures:
            await self._cancel(pending)
            raise failures[0]

        # Completion order is arbitrary
        return sorted((t.result() for t in tasks), key=lambda e: e.index)

    async def _embed_chunk(
        self,
        chunk: DocumentChunk,
        semaphore: asyncio.Semaphore,
        stats: PipelineStats,
        failures: list[DocRAGError],
    ) -> ChunkEmbedding:
        async with semaphore:
            try:
                vector = await execute_with_retry(
                    self._call_provider, chunk, stats, config=self._retry_config
                )
            except DocRAGError as e:
                e.details.setdefault("chunk_index", chunk.index)
                failures.append(e)
                raise
            except Exception as e:
                error = ProviderError(
                    f"Embedding chunk {chunk.index} failed: {type(e).__name__}: {e}",
                    details={"chunk_index": chunk.index},
                    original_error=e,
                )
                failures.append(error)
                raise error from e

        return ChunkEmbedding(index=chunk.index, chunk=chunk.text, vector=vector)

    async def _call_provider(self, chunk: DocumentChunk, stats: PipelineStats) -> list[float]:
        stats.provider_calls += 1
        try:
            return await asyncio.wait_for(
                self.embedder.embed(chunk.text), timeout=self.config.call_timeout
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"Embedding chunk {chunk.index} timed out after {self.config.call_timeout}s",
                timeout=self.config.call_timeout,
                details={"chunk_index": chunk.index},
                original_error=e,
            ) from e

    @staticmethod
    async def _cancel(tasks) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    @asynccontextmanager
    async def _document_lock(self, document_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        self._lock_users[document_id] = self._lock_users.get(document_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[document_id] -= 1
            if not self._lock_users[document_id]:
                del self._lock_users[document_id]
                del self._locks[document_id]
