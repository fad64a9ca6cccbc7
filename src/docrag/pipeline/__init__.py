from .embedding import EmbeddingPipeline, PipelineStats

__all__ = ["EmbeddingPipeline", "PipelineStats"]
