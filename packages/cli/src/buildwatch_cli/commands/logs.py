"""logs command — fetch a build log and colour it by line class."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from buildwatch_core.logs import DEFAULT, ERROR, SUCCESS, WARNING, classify_lines, fetch_logs, write_log_file

console = Console()

_LINE_STYLE = {
    ERROR: "red",
    SUCCESS: "green",
    WARNING: "yellow",
    DEFAULT: "grey70",
}


@click.command("logs")
@click.argument("job_name")
@click.argument("build_number", type=int)
@click.option(
    "--download",
    "download_dir",
    default=None,
    type=click.Path(file_okay=False),
    help="Also save the log as <job>-build-<n>.log in this directory.",
)
@click.pass_context
def logs_cmd(ctx, job_name: str, build_number: int, download_dir: str | None):
    """Show the console log of JOB_NAME build BUILD_NUMBER."""
    from buildwatch_cli.cli import make_client

    client = make_client(ctx)
    try:
        text = fetch_logs(client, job_name, build_number)
    finally:
        client.close()

    console.print(f"[bold]Build Logs[/bold]  {escape(job_name)} - Build #{escape(str(build_number))}\n")
    for line_class, line in classify_lines(text):
        style = _LINE_STYLE[line_class]
        console.print(f"[{style}]{escape(line)}[/{style}]", highlight=False)

    if download_dir is not None:
        path = write_log_file(text, job_name, build_number, download_dir)
        console.print(f"\n[green]Saved log to {escape(str(path))}[/green]")
