"""Adapters CLI command -- list registered adapters and their capabilities."""

import json

import typer
from rich.table import Table

from . import app
from ._common import console


@app.command()
def adapters(
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    List available adapters, their priority and capabilities.
    """
    from ..adapters import create_default_registry

    registry = create_default_registry()

    if json_output:
        print(json.dumps(registry.get_capabilities_summary(), indent=2))
        return

    table = Table(show_header=True, pad_edge=True)
    table.add_column("Type")
    table.add_column("Name")
    table.add_column("Priority", justify="right")
    table.add_column("Capabilities")
    for meta in sorted(registry.get_registered_adapters(), key=lambda m: m.priority, reverse=True):
        table.add_row(
            meta.type,
            meta.name,
            str(meta.priority),
            ", ".join(sorted(c.value for c in meta.capabilities)),
        )
    console.print(table)
