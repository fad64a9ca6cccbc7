"""
Backoff for embedding provider calls.

Only errors the provider taxonomy marks retryable (rate limits, 503 and other
5xx responses, timeouts, dropped connections) get another attempt; anything
else propagates from the first attempt. A provider ``retry_after`` hint wins
over the computed backoff, capped at ``max_delay``.

Usage:
    vector = await execute_with_retry(
        embedder.embed, chunk.text, config=RetryConfig(max_attempts=3)
    )
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from docrag.errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """
    Backoff policy for one embedding call.

    Attributes:
        max_attempts: Attempts including the first; 1 disables retry
        base_delay: Wait after the first failure, doubled on each later one (seconds)
        max_delay: Upper bound for any single wait (seconds)
        jitter: Random spread applied to the wait, as a fraction of it
    """

    max_attempts: int = 1
    base_delay: float = 0.5
    max_delay: float = 10.0
    jitter: float = 0.1

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if not 0 <= self.jitter <= 1:
            raise ValueError("jitter must be between 0 and 1")

    def backoff(self, attempt: int, error: Exception) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        hint = getattr(error, "retry_after", None)
        if hint is not None and hint > 0:
            return min(hint, self.max_delay)

        delay = self.base_delay * 2 ** (attempt - 1)
        delay *= 1 + random.uniform(-self.jitter, self.jitter)
        return max(0.0, min(delay, self.max_delay))


async def execute_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> T:
    """Await ``func(*args, **kwargs)``, retrying retryable provider errors."""
    config = config or RetryConfig()
    attempt = 1

    while True:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not is_retryable(e) or attempt >= config.max_attempts:
                if attempt > 1:
                    logger.error(
                        f"Embedding call gave up after {attempt} attempts: "
                        f"{type(e).__name__}: {e}"
                    )
                raise

            delay = config.backoff(attempt, e)
            logger.warning(
                f"Embedding call attempt {attempt}/{config.max_attempts} failed with "
                f"{type(e).__name__}, retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)
            attempt += 1
