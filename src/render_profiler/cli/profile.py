"""Profile CLI command -- record and analyze a live collection window."""

import threading
from typing import Optional

import typer

from . import app
from ._common import cli_errors, console, print_result, resolve_config


@app.command()
def profile(
    ctx: typer.Context,
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Remote-debugging port (default 9222)"),
    host: Optional[str] = typer.Option(None, "--host", help="Remote-debugging host"),
    duration: Optional[int] = typer.Option(None, "--duration", "-d", help="Collection window in ms", min=1),
    adapter: Optional[str] = typer.Option(None, "--adapter", "-a", help="Adapter type (default: auto-detect)"),
    browser: Optional[str] = typer.Option(None, "--browser", help="Browser name hint for auto-detection"),
    url: Optional[str] = typer.Option(None, "--url", help="Page URL recorded in the trace metadata"),
    fps: Optional[float] = typer.Option(None, "--fps", help="Target frame rate"),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    Connect to a running browser, record a trace and analyze it.

    The browser must already expose a remote-debugging port.

    [bold cyan]Examples:[/bold cyan]

      render-profiler profile --port 9222 --duration 5000
    """
    from ..adapters import CollectOptions, ConnectOptions, create_default_registry
    from ..analysis import Analyzer

    cancel = threading.Event()
    registry = create_default_registry()
    with cli_errors("Profiling"):
        config = resolve_config(ctx, cdp_host=host, cdp_port=port, collection_duration_ms=duration, fps_target=fps)
        try:
            active = registry.get_active(
                ConnectOptions(
                    adapter_type=adapter,
                    browser_name=browser,
                    host=config.cdp_host,
                    port=config.cdp_port,
                    timeout_ms=int(config.cdp_timeout_seconds * 1000),
                    trace_dir=config.trace_dir,
                )
            )
            if not json_output:
                console.print(f"Recording for {config.collection_duration_ms}ms...")
            snapshot = active.collect_trace(
                CollectOptions(
                    scenario="profile",
                    duration_ms=config.collection_duration_ms,
                    fps_target=config.fps_target,
                    url=url,
                    cancel_event=cancel,
                )
            )
        except KeyboardInterrupt:
            cancel.set()
            raise
        finally:
            registry.disconnect_active()

        result = Analyzer(config=config).analyze_snapshot(snapshot)
        print_result(result, json_output=json_output)
