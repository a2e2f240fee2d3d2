from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable

import typer
from rich.console import Console
from rich.table import Table

from extractbench.client import OpenRouterClient
from extractbench.config import DEFAULT_CONFIGURATIONS, Settings
from extractbench.logging_config import configure_logging
from extractbench.models import ModelConfiguration, ModelPricing, TestCase
from extractbench.output import render_report
from extractbench.runner import BenchmarkOrchestrator
from extractbench.template import default_template, load_template
from extractbench.testcases import DEFAULT_TEST_CASES, load_test_cases

app = typer.Typer(no_args_is_help=True)


@app.command()
def benchmark(
    models: list[str] = typer.Option([], "--model", "-m", help="model or model@provider; defaults to the built-in table"),
    cases: Path | None = typer.Option(None, "--cases", help="JSON file with test cases"),
    template: Path | None = typer.Option(None, "--template", "-t", help="Prompt template file"),
    concurrency: int | None = typer.Option(None, "--concurrency", "-c"),
    timeout: float | None = typer.Option(None, "--timeout", help="Per-call timeout in seconds"),
    retries: int | None = typer.Option(None, "--retries", help="Retries on timeout"),
    output_format: str = typer.Option("table", "--output", "-o", help="table|json|csv"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show received values and debug details"),
) -> None:
    """Benchmark structured extraction across model/provider combinations."""
    configure_logging(verbose)
    settings = Settings()
    output_format = output_format.lower()
    if output_format not in {"table", "json", "csv"}:
        raise typer.BadParameter("Output must be one of: table, json, csv.")

    max_concurrency = concurrency if concurrency is not None else settings.max_concurrency
    if max_concurrency < 1:
        raise typer.BadParameter("Concurrency must be at least 1.")
    call_timeout = timeout if timeout is not None else settings.timeout_seconds
    if call_timeout <= 0:
        raise typer.BadParameter("Timeout must be positive.")
    max_retries = retries if retries is not None else settings.max_retries
    if max_retries < 0:
        raise typer.BadParameter("Retries must be non-negative.")

    test_cases = _load_cases(cases)
    render = _load_render(template)
    console = Console(stderr=output_format != "table")

    async def _run() -> None:
        async with OpenRouterClient(
            api_key=settings.openrouter_api_key,
            base_url=settings.base_url,
            timeout=settings.http_timeout_seconds,
            repair_retries=settings.repair_retries,
            referer=settings.referer,
            title=settings.title,
        ) as client:
            if models:
                pricing = await client.fetch_models()
                configurations = _parse_models(models, pricing, console)
            else:
                configurations = list(DEFAULT_CONFIGURATIONS)

            orchestrator = BenchmarkOrchestrator(
                client,
                configurations,
                max_concurrency=max_concurrency,
                timeout=call_timeout,
                max_retries=max_retries,
                render=render,
                console=console,
            )
            report = await orchestrator.run_all(test_cases)
        render_report(report, output_format, console)

    asyncio.run(_run())


@app.command()
def models() -> None:
    """List OpenRouter models with their pricing."""
    settings = Settings()

    async def _run() -> None:
        async with OpenRouterClient(
            api_key=settings.openrouter_api_key,
            base_url=settings.base_url,
            timeout=settings.http_timeout_seconds,
        ) as client:
            pricing = await client.fetch_models()
        _render_models(pricing)

    asyncio.run(_run())


@app.command()
def cases(
    cases_file: Path | None = typer.Option(None, "--cases", help="JSON file with test cases"),
) -> None:
    """Show the test cases a benchmark would run."""
    test_cases = _load_cases(cases_file)
    table = Table(title=f"Test cases ({len(test_cases)})")
    table.add_column("#", justify="right")
    table.add_column("Description")
    table.add_column("Validator")
    table.add_column("Content")
    for idx, tc in enumerate(test_cases, start=1):
        table.add_row(str(idx), tc.description, "yes" if tc.validator else "schema only", tc.content)
    Console().print(table)


def _load_cases(path: Path | None) -> list[TestCase]:
    if path is None:
        return list(DEFAULT_TEST_CASES)
    if not path.exists():
        raise typer.BadParameter(f"Test case file not found: {path}")
    try:
        test_cases = load_test_cases(path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if not test_cases:
        raise typer.BadParameter("Test case file must contain at least one case.")
    return test_cases


def _load_render(path: Path | None) -> Callable[[str], str]:
    if path is None:
        return default_template
    if not path.exists():
        raise typer.BadParameter(f"Template file not found: {path}")
    try:
        return load_template(path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _parse_models(
    specs: list[str],
    pricing: dict[str, ModelPricing],
    console: Console,
) -> list[ModelConfiguration]:
    # Dedupe while keeping order
    seen = set()
    configurations = []
    for spec in specs:
        if spec in seen:
            continue
        seen.add(spec)
        try:
            configuration = ModelConfiguration.from_spec(spec)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        model_pricing = pricing.get(configuration.model)
        if model_pricing is None:
            console.print(f"[dim]No pricing for '{configuration.model}', cost will be reported as 0[/dim]")
        configurations.append(configuration.model_copy(update={"pricing": model_pricing}))
    return configurations


def _render_models(pricing: dict[str, ModelPricing]) -> None:
    console = Console()
    table = Table(title="OpenRouter Models (Pricing)")
    table.add_column("Model")
    table.add_column("Input $/1M", justify="right")
    table.add_column("Output $/1M", justify="right")

    for model_id in sorted(pricing.keys()):
        model_pricing = pricing[model_id]
        table.add_row(model_id, f"{model_pricing.input:.6f}", f"{model_pricing.output:.6f}")
    console.print(table)
