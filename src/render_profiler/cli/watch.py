"""Watch CLI command -- analyze each new trace dropped into a directory."""

import threading
from pathlib import Path
from typing import Optional

import typer

from . import app
from ._common import cli_errors, console, print_result, resolve_config


@app.command()
def watch(
    ctx: typer.Context,
    directory: Optional[Path] = typer.Argument(None, help="Trace directory (default: from config)"),
    existing: bool = typer.Option(False, "--existing", help="Also analyze recent files already present"),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    Watch a directory for sanitized native traces and analyze each one.

    Press Ctrl+C to stop.
    """
    from ..adapters import CollectOptions, TraceFileWatcher, normalize_native_trace
    from ..analysis import Analyzer

    with cli_errors("Watching"):
        config = resolve_config(ctx)
        analyzer = Analyzer(config=config)
        trace_dir = directory or Path(config.trace_dir)

        def on_trace(trace: dict, path: Path) -> None:
            snapshot = normalize_native_trace(trace, CollectOptions(scenario=path.stem))
            print_result(analyzer.analyze_snapshot(snapshot), json_output=json_output)

        def on_error(error: Exception, path: Path) -> None:
            console.print(f"[red]Skipped {path.name}:[/red] {error}")

        watcher = TraceFileWatcher(
            trace_dir,
            on_trace=on_trace,
            on_error=on_error,
            debounce_ms=config.watch_debounce_ms,
            process_existing=existing,
        )
        watcher.start()
        console.print(f"Watching [bold]{trace_dir}[/bold] for traces (Ctrl+C to stop)")
        try:
            threading.Event().wait()
        finally:
            watcher.stop()
