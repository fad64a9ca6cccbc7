"""Utility helpers."""

from .async_helpers import run_async_in_sync_context
from .retry import RetryConfig, execute_with_retry
from .similarity import cosine_similarity

__all__ = [
    "cosine_similarity",
    "run_async_in_sync_context",
    "RetryConfig",
    "execute_with_retry",
]
