"""Shared fixtures and stub extraction services for the test suite."""

import asyncio
from typing import Callable

import pytest

from extractbench.models import Extraction, ExtractionRequest, ModelConfiguration, ModelPricing, TestCase, Usage
from extractbench.schema import UserProfile


class StubExtractor:
    """Deterministic in-process stand-in for the extraction service.

    Records every call, tracks how many calls are in flight and keeps an ordered
    start/end event log for ordering assertions.
    """

    def __init__(
        self,
        responder: Callable[[ExtractionRequest], Extraction] | None = None,
        delay: float | Callable[[ExtractionRequest], float] = 0.0,
    ) -> None:
        self.responder = responder or (lambda request: profile_extraction())
        self.delay = delay
        self.calls: list[ExtractionRequest] = []
        self.events: list[tuple[str, str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def extract(self, request: ExtractionRequest) -> Extraction:
        self.calls.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        content = request.messages[-1]["content"]
        self.events.append(("start", request.model, content))
        try:
            delay = self.delay(request) if callable(self.delay) else self.delay
            await asyncio.sleep(delay)
            return self.responder(request)
        finally:
            self.in_flight -= 1
            self.events.append(("end", request.model, content))


def profile_extraction(usage: Usage | None = None, **fields) -> Extraction:
    defaults = {"name": "John", "age": 29, "email": "john@x.com"}
    defaults.update(fields)
    return Extraction(value=UserProfile(**defaults), usage=usage)


@pytest.fixture
def configuration() -> ModelConfiguration:
    return ModelConfiguration(
        model="z-ai/glm-4.5-air",
        provider="GMICloud",
        pricing=ModelPricing(input=0.20, output=1.10),
    )


@pytest.fixture
def john_case() -> TestCase:
    return TestCase(description="Short intro", content="Meet John, 29yo, john@x.com")


@pytest.fixture
def make_cases() -> Callable[[int], list[TestCase]]:
    def _make(count: int) -> list[TestCase]:
        return [TestCase(description=f"case {i}", content=f"content {i}") for i in range(count)]

    return _make
