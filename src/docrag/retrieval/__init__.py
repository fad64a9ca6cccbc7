from .ranker import SimilarityRanker, merge_selections
from .service import ContextRetriever

__all__ = ["ContextRetriever", "SimilarityRanker", "merge_selections"]
