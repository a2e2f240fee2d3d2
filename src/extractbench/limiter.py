from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


class ConcurrencyLimiter:
    """Caps the number of task bodies running at once.

    Waiters are admitted in submission order as slots free up. A failing task
    releases its slot and does not affect the others.
    """

    def __init__(self, max_concurrency: int) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._active = 0

    @property
    def active(self) -> int:
        return self._active

    async def schedule(self, factory: Callable[[], Awaitable[T]]) -> T:
        async with self._semaphore:
            self._active += 1
            try:
                return await factory()
            finally:
                self._active -= 1
