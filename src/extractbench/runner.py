from __future__ import annotations

import asyncio
import logging
import time
from functools import partial
from typing import Callable, Protocol, Sequence

from rich.console import Console

from extractbench.limiter import ConcurrencyLimiter
from extractbench.models import (
    BenchmarkReport,
    CaseOutcome,
    CaseStatus,
    Extraction,
    ExtractionRequest,
    ModelConfiguration,
    ProviderRouting,
    SuiteSummary,
    TestCase,
)
from extractbench.output import render_suite_start, render_suite_summary
from extractbench.pricing import calculate_cost
from extractbench.retry import with_timeout_and_retries
from extractbench.template import default_template

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 2


class Extractor(Protocol):
    async def extract(self, request: ExtractionRequest) -> Extraction: ...


def check_run_settings(max_concurrency: int, timeout: float, max_retries: int) -> None:
    """Reject run settings that would turn every case into a failure."""
    if max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")
    if timeout <= 0:
        raise ValueError("timeout must be positive")
    if max_retries < 0:
        raise ValueError("max_retries must be non-negative")


def build_request(
    configuration: ModelConfiguration,
    test_case: TestCase,
    render: Callable[[str], str] = default_template,
) -> ExtractionRequest:
    routing = None
    if configuration.provider:
        routing = ProviderRouting(order=[configuration.provider], allow_fallbacks=False)
    return ExtractionRequest(
        model=configuration.model,
        messages=[{"role": "user", "content": render(test_case.content)}],
        temperature=0.0,
        routing=routing,
    )


async def run_one(
    extractor: Extractor,
    configuration: ModelConfiguration,
    test_case: TestCase,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    max_retries: int = DEFAULT_MAX_RETRIES,
    render: Callable[[str], str] = default_template,
    abandoned: set[asyncio.Task] | None = None,
) -> CaseOutcome:
    """Run a single test case and classify it. Never raises on per-case errors."""
    model = configuration.model
    request = build_request(configuration, test_case, render)
    start = time.perf_counter()
    try:
        extraction = await with_timeout_and_retries(
            lambda: extractor.extract(request), timeout, max_retries, abandoned
        )
        passed = test_case.validator is None or bool(test_case.validator(extraction.value))
    except Exception as exc:  # noqa: BLE001
        duration_ms = (time.perf_counter() - start) * 1000.0
        reason = type(exc).__name__
        logger.error(
            "[%s] ❌ Failed (%.2fs): %s. Reason: %s", model, duration_ms / 1000, test_case.description, reason
        )
        return CaseOutcome(
            status=CaseStatus.FAILURE,
            description=test_case.description,
            duration_ms=duration_ms,
            usage=None,
            error=reason,
        )

    duration_ms = (time.perf_counter() - start) * 1000.0
    if passed:
        logger.info("[%s] ✅ Success (%.2fs): %s", model, duration_ms / 1000, test_case.description)
        status = CaseStatus.SUCCESS
    else:
        logger.warning("[%s] ⚠️ Data error (%.2fs): %s", model, duration_ms / 1000, test_case.description)
        logger.debug("   Received: %s", extraction.value.model_dump_json())
        status = CaseStatus.VALIDATION_ERROR
    return CaseOutcome(
        status=status,
        description=test_case.description,
        duration_ms=duration_ms,
        usage=extraction.usage,
    )


def summarize(
    configuration: ModelConfiguration,
    outcomes: Sequence[CaseOutcome],
    total_time_sec: float,
) -> SuiteSummary:
    """Reduce per-case outcomes into suite statistics.

    The success rate counts every case in the denominator, failures included.
    Average latency covers successful cases only.
    """
    successful = [o for o in outcomes if o.status is CaseStatus.SUCCESS]
    validation_errors = sum(1 for o in outcomes if o.status is CaseStatus.VALIDATION_ERROR)
    failures = sum(1 for o in outcomes if o.status is CaseStatus.FAILURE)

    total = len(outcomes)
    success_rate = len(successful) / total * 100 if total else 0.0
    avg_time_sec = sum(o.duration_ms for o in successful) / len(successful) / 1000 if successful else 0.0

    input_tokens = sum(o.usage.prompt_tokens for o in outcomes if o.usage is not None)
    output_tokens = sum(o.usage.completion_tokens for o in outcomes if o.usage is not None)

    return SuiteSummary(
        model=configuration.model,
        provider=configuration.display_provider,
        success_rate=success_rate,
        successful=len(successful),
        validation_errors=validation_errors,
        failures=failures,
        avg_time_sec=avg_time_sec,
        total_time_sec=total_time_sec,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost_usd=calculate_cost(configuration.pricing, input_tokens, output_tokens),
    )


async def run_suite(
    extractor: Extractor,
    configuration: ModelConfiguration,
    test_cases: Sequence[TestCase],
    *,
    max_concurrency: int = 1,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    max_retries: int = DEFAULT_MAX_RETRIES,
    render: Callable[[str], str] = default_template,
    console: Console | None = None,
    abandoned: set[asyncio.Task] | None = None,
) -> SuiteSummary:
    check_run_settings(max_concurrency, timeout, max_retries)
    if abandoned is None:
        abandoned = set()
    console = console or Console(stderr=True)
    render_suite_start(console, configuration)

    limiter = ConcurrencyLimiter(max_concurrency)
    start = time.perf_counter()
    outcomes = await asyncio.gather(
        *(
            limiter.schedule(
                partial(
                    run_one,
                    extractor,
                    configuration,
                    test_case,
                    timeout=timeout,
                    max_retries=max_retries,
                    render=render,
                    abandoned=abandoned,
                )
            )
            for test_case in test_cases
        )
    )
    summary = summarize(configuration, outcomes, time.perf_counter() - start)

    render_suite_summary(console, summary)
    return summary


class BenchmarkOrchestrator:
    """Runs one suite per configuration, strictly one after another."""

    def __init__(
        self,
        extractor: Extractor,
        configurations: Sequence[ModelConfiguration],
        *,
        max_concurrency: int = 1,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        render: Callable[[str], str] = default_template,
        console: Console | None = None,
    ) -> None:
        check_run_settings(max_concurrency, timeout, max_retries)
        self.extractor = extractor
        self.configurations = tuple(configurations)
        self.max_concurrency = max_concurrency
        self.timeout = timeout
        self.max_retries = max_retries
        self.render = render
        self.console = console or Console(stderr=True)
        # Timed-out calls still in flight, kept until they settle.
        self.abandoned: set[asyncio.Task] = set()

    async def run_all(self, test_cases: Sequence[TestCase]) -> BenchmarkReport:
        logger.info(
            "🔥 Starting benchmark: %d configuration(s) x %d test case(s)",
            len(self.configurations),
            len(test_cases),
        )
        logger.debug(
            "Worst-case wall time per case: %.1fs (%d attempt(s) x %.1fs)",
            (self.max_retries + 1) * self.timeout,
            self.max_retries + 1,
            self.timeout,
        )
        suites: list[SuiteSummary] = []
        for configuration in self.configurations:
            summary = await run_suite(
                self.extractor,
                configuration,
                test_cases,
                max_concurrency=self.max_concurrency,
                timeout=self.timeout,
                max_retries=self.max_retries,
                render=self.render,
                console=self.console,
                abandoned=self.abandoned,
            )
            suites.append(summary)
        logger.info("✅ All test suites finished. Benchmark complete.")
        return BenchmarkReport(suites=suites)
