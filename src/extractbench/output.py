from __future__ import annotations

import csv
import json
import sys
from typing import Iterable

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

from extractbench.models import BenchmarkReport, ModelConfiguration, SuiteSummary

REPORT_COLUMNS = ("Model", "Provider", "Success (%)", "Avg Time (sec)", "Results (✅/⚠️/❌)", "Cost ($)")


def render_suite_start(console: Console, configuration: ModelConfiguration) -> None:
    console.print()
    console.print(Rule("🚀 RUNNING TEST SUITE", style="bold"))
    console.print(f"   Model: [cyan]{configuration.model}[/cyan]")
    console.print(f"   Provider: {configuration.display_provider}")
    console.print(Rule(style="bold"))


def render_suite_summary(console: Console, summary: SuiteSummary) -> None:
    console.print()
    console.print(Rule(f"📊 Summary for {summary.model} @ {summary.provider} 📊"))
    console.print(f"   Total suite time: {summary.total_time_sec:.2f} sec.")
    console.print(f"   Avg time per successful request: {summary.avg_time_sec:.2f} sec.")
    console.print(
        f"   Totals: ✅ {summary.successful} (success) | "
        f"⚠️ {summary.validation_errors} (data error) | ❌ {summary.failures} (failure)"
    )
    console.print(f"   📈 True success rate: {summary.success_rate:.1f}%")
    console.print(f"   Tokens (in/out): {summary.input_tokens}/{summary.output_tokens}")
    console.print(f"   💰 Approx. cost: ${summary.cost_usd:.6f}")
    console.print(Rule())


def render_report(report: BenchmarkReport, output_format: str, console: Console | None = None) -> None:
    output_format = output_format.lower()
    if output_format == "json":
        _render_json(report.suites)
    elif output_format == "csv":
        _render_csv(report.suites)
    else:
        _render_table(report.suites, console or Console())


def report_rows(suites: Iterable[SuiteSummary]) -> list[tuple[str, ...]]:
    return [
        (
            s.model,
            s.provider,
            f"{s.success_rate:.1f}%",
            f"{s.avg_time_sec:.2f}",
            f"{s.successful}/{s.validation_errors}/{s.failures}",
            f"{s.cost_usd:.6f}",
        )
        for s in suites
    ]


def _render_table(suites: list[SuiteSummary], console: Console) -> None:
    table = Table(title="🏆 FINAL BENCHMARK REPORT 🏆")
    for column in REPORT_COLUMNS:
        table.add_column(column, justify="left" if column in {"Model", "Provider"} else "right")
    for row in report_rows(suites):
        table.add_row(*row)
    console.print()
    console.print(table)


def _render_json(suites: Iterable[SuiteSummary]) -> None:
    payload = [s.model_dump() for s in suites]
    sys.stdout.write(json.dumps(payload, indent=2))
    sys.stdout.write("\n")


def _render_csv(suites: Iterable[SuiteSummary]) -> None:
    writer = csv.DictWriter(sys.stdout, fieldnames=list(SuiteSummary.model_fields))
    writer.writeheader()
    for s in suites:
        writer.writerow(s.model_dump())
