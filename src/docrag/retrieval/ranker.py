"""Similarity ranking of chunk embeddings against a query vector."""

from typing import Sequence

from loguru import logger

from ..config.models import RankingConfig, SelectionOrder
from ..core.embedding import ChunkEmbedding, ScoredChunk
from ..utils.similarity import cosine_similarity


def _order_key(scored: ScoredChunk) -> tuple[float, int]:
    return (-scored.score, scored.index)


class SimilarityRanker:
    """
    Ranks chunks by cosine similarity to a query and selects the best ones.

    Selection combines a top-N cap with a minimum score. A chunk passes the
    threshold only when its score is strictly greater than it.

    Attributes:
        top_n: Maximum number of chunks to select
        threshold: Minimum (exclusive) similarity
        selection_order: Whether the cap is applied before or after filtering
    """

    def __init__(
        self,
        top_n: int = 5,
        threshold: float = 0.4,
        selection_order: SelectionOrder | str = SelectionOrder.CAP_THEN_FILTER,
    ):
        self.top_n = top_n
        self.threshold = threshold
        self.selection_order = SelectionOrder(selection_order)

    @classmethod
    def from_config(cls, config: RankingConfig) -> "SimilarityRanker":
        return cls(config.top_n, config.threshold, config.selection_order)

    def score(
        self,
        query_vector: Sequence[float],
        embeddings: Sequence[ChunkEmbedding],
    ) -> list[ScoredChunk]:
        """Score every embedding; best first, ties broken by lower index."""
        query = list(query_vector)
        mismatched = 0
        scored = []

        for embedding in embeddings:
            if len(embedding.vector) != len(query):
                mismatched += 1
            scored.append(
                ScoredChunk(embedding=embedding, score=cosine_similarity(query, embedding.vector))
            )

        if mismatched:
            logger.warning(
                f"{mismatched} of {len(embeddings)} embeddings do not match the query "
                f"dimension {len(query)}; scored as 0"
            )

        scored.sort(key=_order_key)
        return scored

    def select(
        self,
        query_vector: Sequence[float],
        embeddings: Sequence[ChunkEmbedding],
    ) -> list[ScoredChunk]:
        """Apply the top-N cap and the threshold in the configured order."""
        if self.top_n <= 0 or not embeddings:
            return []

        scored = self.score(query_vector, embeddings)

        if self.selection_order is SelectionOrder.CAP_THEN_FILTER:
            selected = [s for s in scored[: self.top_n] if s.score > self.threshold]
        else:
            selected = [s for s in scored if s.score > self.threshold][: self.top_n]

        logger.debug(
            f"Selected {len(selected)}/{len(scored)} chunks "
            f"(top_n={self.top_n}, threshold={self.threshold}, "
            f"order={self.selection_order.value})"
        )
        return selected

    def rank(
        self,
        query_vector: Sequence[float],
        embeddings: Sequence[ChunkEmbedding],
    ) -> list[str]:
        """Texts of the selected chunks, best first."""
        return [s.text for s in self.select(query_vector, embeddings)]


def merge_selections(selections: Sequence[Sequence[ScoredChunk]], limit: int) -> list[ScoredChunk]:
    """
    Merge per-question selections.

    Each chunk appears once with its best score; the result is ordered by
    score descending then index ascending and capped at ``limit``.
    """
    best: dict[int, ScoredChunk] = {}
    for selection in selections:
        for scored in selection:
            current = best.get(scored.index)
            if current is None or scored.score > current.score:
                best[scored.index] = scored

    return sorted(best.values(), key=_order_key)[: max(limit, 0)]
