"""Shared CLI helpers: console, config resolution, error mapping, result output."""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Iterator

import typer
from rich.console import Console
from rich.table import Table

from ..analysis.models import AnalysisResult, Severity
from ..config import ProfilerConfig, load_config
from ..exceptions import RenderProfilerError
from ..logging_config import get_logger

console = Console()
logger = get_logger(__name__)

_SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "dim",
}


def resolve_config(ctx: typer.Context, **overrides) -> ProfilerConfig:
    """Build configuration from the global options plus command overrides."""
    obj = ctx.obj or {}
    return load_config(
        config_file=obj.get("config_file"),
        verbose=obj.get("verbose", False),
        quiet=obj.get("quiet", False),
        **overrides,
    )


@contextmanager
def cli_errors(action: str) -> Iterator[None]:
    """Map exceptions to exit codes; a RenderProfilerError exits with its own code."""
    try:
        yield
    except typer.Exit:
        raise
    except RenderProfilerError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(e.exit_code)
    except KeyboardInterrupt:
        console.print(f"\n[yellow]{action} interrupted[/yellow]")
        raise typer.Exit(130)
    except Exception as e:
        logger.exception(f"Unexpected error during {action.lower()}")
        console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)


def print_result(result: AnalysisResult, json_output: bool = False) -> None:
    if json_output:
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return

    summary = result.summary
    frames = summary.frames
    console.print()
    console.print(f"[bold cyan]{summary.name}[/bold cyan] -- {summary.duration_ms:.0f}ms, {summary.url}")
    console.print(
        f"Frames: {frames.total} total, {frames.dropped} dropped, "
        f"{frames.avg_fps:.1f} fps avg (budget {frames.frame_budget_ms:.2f}ms)"
    )

    for warning in result.warnings:
        console.print(f"[yellow]{warning.code}:[/yellow] {warning.message}")
        for suggestion in warning.suggestions:
            console.print(f"  [dim]-[/dim] {suggestion}")

    if not result.detections:
        console.print("[green]No rendering issues detected.[/green]")
        return

    table = Table(show_header=True, pad_edge=True)
    table.add_column("Severity")
    table.add_column("Type")
    table.add_column("Score", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Speedup", justify="right")
    table.add_column("Description")

    ordered = sorted(result.detections, key=lambda d: d.metrics.impact_score, reverse=True)
    for d in ordered:
        style = _SEVERITY_STYLES[d.severity]
        table.add_row(
            f"[{style}]{d.severity.value}[/{style}]",
            d.type.value,
            str(d.metrics.impact_score),
            f"{d.metrics.duration_ms:.1f}ms",
            f"{d.metrics.estimated_speedup_pct}%",
            d.description,
        )
    console.print(table)
    console.print()
