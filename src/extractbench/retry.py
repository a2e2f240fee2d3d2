from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from extractbench.errors import ExtractionTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _abandon(task: asyncio.Task, abandoned: set[asyncio.Task]) -> None:
    abandoned.add(task)

    def _release(done: asyncio.Task) -> None:
        abandoned.discard(done)
        if not done.cancelled():
            done.exception()

    task.add_done_callback(_release)


async def with_timeout_and_retries(
    operation: Callable[[], Awaitable[T]],
    timeout: float,
    max_retries: int,
    abandoned: set[asyncio.Task] | None = None,
) -> T:
    """Run ``operation`` with a deadline, retrying only on timeout.

    At most ``max_retries + 1`` attempts are made. A timed-out attempt is
    abandoned, not cancelled: the underlying call may still complete, but its
    result is ignored. Any other error propagates immediately.

    Abandoned attempts are parked in ``abandoned`` until they settle. The event
    loop only keeps weak references to tasks, so the caller that owns the run
    should pass a set that outlives it.
    """
    if timeout <= 0:
        raise ValueError("timeout must be positive")
    if max_retries < 0:
        raise ValueError("max_retries must be non-negative")
    if abandoned is None:
        abandoned = set()

    attempts = 0
    while True:
        attempts += 1
        task = asyncio.ensure_future(operation())
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if done:
            return task.result()

        _abandon(task, abandoned)
        if attempts > max_retries:
            raise ExtractionTimeout(timeout)
        logger.warning("[TIMEOUT] Attempt %d failed after %.1fs. Retrying...", attempts, timeout)
