"""Tests for the concurrency limiter."""

import asyncio

import pytest

from extractbench.limiter import ConcurrencyLimiter


async def _track(limiter: ConcurrencyLimiter, peak: list[int], started: list[int], idx: int) -> int:
    started.append(idx)
    peak[0] = max(peak[0], limiter.active)
    await asyncio.sleep(0.01)
    return idx


class TestConcurrencyLimiter:
    @pytest.mark.asyncio
    async def test_cap_of_one_serializes(self) -> None:
        limiter = ConcurrencyLimiter(1)
        peak, started = [0], []
        results = await asyncio.gather(
            *(limiter.schedule(lambda i=i: _track(limiter, peak, started, i)) for i in range(5))
        )
        assert peak[0] == 1
        assert started == [0, 1, 2, 3, 4]
        assert results == [0, 1, 2, 3, 4]
        assert limiter.active == 0

    @pytest.mark.asyncio
    async def test_cap_is_respected(self) -> None:
        limiter = ConcurrencyLimiter(2)
        peak, started = [0], []
        await asyncio.gather(*(limiter.schedule(lambda i=i: _track(limiter, peak, started, i)) for i in range(6)))
        assert peak[0] == 2

    @pytest.mark.asyncio
    async def test_failure_does_not_block_siblings(self) -> None:
        limiter = ConcurrencyLimiter(1)

        async def fail() -> None:
            raise RuntimeError("task failed")

        async def ok() -> str:
            return "ok"

        results = await asyncio.gather(
            limiter.schedule(fail),
            limiter.schedule(ok),
            return_exceptions=True,
        )
        assert isinstance(results[0], RuntimeError)
        assert results[1] == "ok"
        assert limiter.active == 0

    def test_rejects_zero(self) -> None:
        with pytest.raises(ValueError):
            ConcurrencyLimiter(0)
