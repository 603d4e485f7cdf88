"""Analyze CLI command -- offline analysis of a trace file."""

from pathlib import Path
from typing import Optional

import typer

from . import app
from ._common import cli_errors, print_result, resolve_config


@app.command()
def analyze(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False, readable=True),
    fps: Optional[float] = typer.Option(None, "--fps", help="Target frame rate (default: from trace or config)"),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    Analyze a saved trace: a sanitized native trace or a Chrome trace export.

    [bold cyan]Examples:[/bold cyan]

      render-profiler analyze trace.json

      render-profiler analyze checkout.json --fps 120 --json
    """
    from ..analysis import Analyzer
    from ..loading import load_trace_file

    with cli_errors("Analysis"):
        config = resolve_config(ctx)
        snapshot = load_trace_file(path, fps_target=fps)
        result = Analyzer(config=config).analyze_snapshot(snapshot, fps_target=fps)
        print_result(result, json_output=json_output)
