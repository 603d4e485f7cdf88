"""CLI entry point - registers all subcommands."""

from pathlib import Path
from typing import Optional

import typer

from ._common import cli_errors, console

app = typer.Typer(
    name="render-profiler",
    help="Render Profiler - browser rendering performance analysis",
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Append debug logs to this file"),
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
):
    """
    Find layout thrashing, GPU stalls, long tasks and heavy paints in browser traces.
    """
    from .. import __version__
    from ..config import load_config
    from ..logging_config import setup_logging

    if version:
        console.print(f"[bold cyan]Render Profiler[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)

    with cli_errors("Configuration"):
        settings = load_config(config_file=config, verbose=verbose, quiet=quiet)
    setup_logging(verbosity=settings.verbosity, log_file=str(log_file) if log_file else None)
    ctx.ensure_object(dict)
    ctx.obj.update({"config_file": config, "verbose": verbose, "quiet": quiet})

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


def main() -> None:
    app()


# Import subcommands to register them
from .adapters import adapters as _adapters  # noqa: F401, E402
from .analyze import analyze as _analyze  # noqa: F401, E402
from .profile import profile as _profile  # noqa: F401, E402
from .watch import watch as _watch  # noqa: F401, E402
