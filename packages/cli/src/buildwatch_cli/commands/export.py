"""export command — write the build history to CSV."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from buildwatch_core.export import write_export

console = Console()


@click.command("export")
@click.option(
    "--output-dir",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory to write build-history-<timestamp>.csv into.",
)
@click.pass_context
def export_cmd(ctx, output_dir: str):
    """Export the build history as CSV, most recent build first."""
    history = ctx.obj["history"]
    path = write_export(history, output_dir)
    console.print(f"[green]Exported {len(history)} build(s) to {escape(str(path))}[/green]")
