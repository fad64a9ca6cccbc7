"""
Retrieval service.

Wires the embedding pipeline, the similarity ranker and the context
assembler into one call: given a document and the user's questions, return
the context the generation step should answer from.
"""

import asyncio
from typing import Sequence

from loguru import logger

from ..cache.base import BaseEmbeddingCache
from ..cache.factory import CacheFactory
from ..config.models import QueryMode, RetrievalConfig
from ..config.settings import Settings, load_settings
from ..context.assembler import ContextAssembler
from ..context.sanitizer import Sanitizer
from ..core.embedding import ChunkEmbedding, ScoredChunk
from ..core.result import RetrievalResult
from ..embedder.base import BaseEmbedder
from ..embedder.factory import EmbedderFactory
from ..errors import DocRAGError, ProviderError, ProviderTimeoutError
from ..pipeline.embedding import EmbeddingPipeline
from ..utils.async_helpers import run_async_in_sync_context
from ..utils.retry import execute_with_retry
from .ranker import SimilarityRanker, merge_selections


class ContextRetriever:
    """
    Document-scoped retrieval: embed (or load) the document, embed the
    questions with the same embedder, rank the chunks and assemble them.

    The embedder and cache are built once and shared across requests.

    Usage:
        async with ContextRetriever.from_settings() as retriever:
            result = await retriever.retrieve(doc_id, text, ["What is covered?"])
            print(result.context)
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        cache: BaseEmbeddingCache,
        config: RetrievalConfig | None = None,
        sanitizer: Sanitizer | None = None,
    ):
        self.config = config or RetrievalConfig()
        self.embedder = embedder
        self.cache = cache
        self.pipeline = EmbeddingPipeline(embedder, cache, self.config.pipeline)
        self.ranker = SimilarityRanker.from_config(self.config.ranking)

        if sanitizer is None:
            rules_file = self.config.context.rules_file
            sanitizer = Sanitizer.from_json(rules_file) if rules_file else Sanitizer()
        self.assembler = ContextAssembler(
            sanitizer,
            separator=self.config.context.separator,
            max_context_chars=self.config.context.max_context_chars,
        )
        self._retry_config = self.config.pipeline.retry.to_retry_config()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ContextRetriever":
        """Build the embedder, cache and configuration from the environment."""
        settings = settings or load_settings()
        config = RetrievalConfig.from_settings(settings)
        return cls(
            EmbedderFactory.create(config.embedding),
            CacheFactory.create(config.cache),
            config,
        )

    async def retrieve(
        self,
        document_id: str,
        raw_text: str,
        questions: Sequence[str],
    ) -> RetrievalResult:
        """
        Retrieve the context relevant to ``questions`` from one document.

        Args:
            document_id: Stable identity of the document (cache key)
            raw_text: Extracted document text
            questions: One or more user questions; blank ones are ignored

        Returns:
            RetrievalResult whose ``context`` is the assembled chunks or the
            no-context sentinel

        Raises:
            ValueError: If no question is given
            DocRAGError: If any stage fails
        """
        if isinstance(questions, str):
            questions = [questions]
        questions = [q for q in questions if q.strip()]
        if not questions:
            raise ValueError("At least one non-empty question is required")

        embeddings = await self.pipeline.get_or_compute_embeddings(document_id, raw_text)
        stats = self.pipeline.last_stats

        if not embeddings:
            selected: list[ScoredChunk] = []
        elif self.config.query_mode is QueryMode.PER_QUESTION:
            selected = await self._select_per_question(embeddings, questions)
        else:
            query = self.config.question_separator.join(questions)
            query_vector = await self._embed_query(query)
            selected = self.ranker.select(query_vector, embeddings)

        context = self.assembler.assemble([s.text for s in selected])
        logger.info(
            f"Retrieved {len(selected)}/{len(embeddings)} chunks of {document_id} "
            f"for {len(questions)} question(s) ({self.config.query_mode.value})"
        )
        return RetrievalResult(
            document_id=document_id,
            context=context,
            selected=selected,
            cache_hit=bool(stats and stats.cache_hit),
            chunk_count=len(embeddings),
        )

    def retrieve_sync(
        self,
        document_id: str,
        raw_text: str,
        questions: Sequence[str],
    ) -> RetrievalResult:
        """Synchronous wrapper around ``retrieve``."""
        return run_async_in_sync_context(self.retrieve(document_id, raw_text, questions))

    async def _select_per_question(
        self,
        embeddings: list[ChunkEmbedding],
        questions: Sequence[str],
    ) -> list[ScoredChunk]:
        semaphore = asyncio.Semaphore(self.config.pipeline.max_concurrent_calls)

        async def select_one(question: str) -> list[ScoredChunk]:
            async with semaphore:
                vector = await self._embed_query(question)
            return self.ranker.select(vector, embeddings)

        # gather cancels nothing on failure, so do it explicitly
        tasks = [asyncio.create_task(select_one(q)) for q in questions]
        try:
            selections = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return merge_selections(selections, self.ranker.top_n * len(questions))

    async def _embed_query(self, text: str) -> list[float]:
        async def call() -> list[float]:
            try:
                return await asyncio.wait_for(
                    self.embedder.embed(text), timeout=self.config.pipeline.call_timeout
                )
            except asyncio.TimeoutError as e:
                raise ProviderTimeoutError(
                    f"Query embedding timed out after {self.config.pipeline.call_timeout}s",
                    timeout=self.config.pipeline.call_timeout,
                    details={"stage": "query_embedding"},
                    original_error=e,
                ) from e

        try:
            return await execute_with_retry(call, config=self._retry_config)
        except DocRAGError:
            raise
        except Exception as e:
            raise ProviderError(
                f"Query embedding failed: {type(e).__name__}: {e}",
                details={"stage": "query_embedding"},
                original_error=e,
            ) from e

    async def aclose(self) -> None:
        await self.embedder.aclose()
        await self.cache.close()

    async def __aenter__(self) -> "ContextRetriever":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
