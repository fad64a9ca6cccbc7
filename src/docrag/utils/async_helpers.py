"""Helpers for running the async retrieval API from synchronous code.

Examples:
    >>> async def fetch_data():
    ...     return "data"
    >>>
    >>> result = run_async_in_sync_context(fetch_data())
    >>> print(result)
    data
"""

import asyncio
from typing import Coroutine, TypeVar

import nest_asyncio
from loguru import logger

T = TypeVar('T')


def run_async_in_sync_context(coro: Coroutine[None, None, T]) -> T:
    """Run a coroutine to completion from synchronous code.

    Uses ``asyncio.run()`` when no loop is running. Inside a running loop
    (Jupyter, an async web framework calling sync code) the loop is patched
    with ``nest_asyncio`` so it can be re-entered.

    Warning:
        Re-entering a running loop blocks it for the duration of the call.
        Prefer awaiting the async API directly when you can.

    Args:
        coro: The coroutine to execute

    Returns:
        The coroutine's return value
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    logger.debug(
        "Detected running event loop. Consider using async methods directly "
        "for better performance."
    )
    nest_asyncio.apply(loop)
    return loop.run_until_complete(coro)
