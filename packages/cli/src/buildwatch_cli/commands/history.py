"""history command — the dashboard: totals plus the build table."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from buildwatch_cli.commands.trigger import styled_status
from buildwatch_core.analytics import compute_stats, filter_builds, round_half_up
from buildwatch_core.export import format_timestamp

console = Console()

_STATUS_FILTERS = ["ALL", "SUCCESS", "FAILED", "RUNNING", "QUEUED", "ABORTED"]


@click.command("history")
@click.option("--search", default="", help="Only builds whose repository URL contains this text.")
@click.option(
    "--status",
    type=click.Choice(_STATUS_FILTERS, case_sensitive=False),
    default="ALL",
    show_default=True,
    help="Only builds with this status.",
)
@click.option("--limit", default=20, show_default=True, help="Maximum number of builds to show.")
@click.pass_context
def history_cmd(ctx, search: str, status: str, limit: int):
    """Show tracked builds, most recent first."""
    history = ctx.obj["history"]
    records = history.all()
    if not records:
        console.print("[yellow]No builds yet. Trigger your first build with `buildwatch trigger REPO_URL`.[/yellow]")
        return

    stats = compute_stats(records)
    console.print(
        f"Total builds: [bold]{stats.total}[/bold]   "
        f"Successful: [green]{stats.success}[/green]   "
        f"Failed: [red]{stats.failed}[/red]"
    )

    matching = filter_builds(records, search=search, status=status.upper())
    if not matching:
        console.print("[yellow]No builds match your search criteria.[/yellow]")
        return

    table = Table(title="Build History", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Build", justify="right")
    table.add_column("Name / Repository", max_width=48)
    table.add_column("Branch")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Tags", max_width=24)
    table.add_column("Started")

    for r in matching[:limit]:
        label = f"{escape(r.build_name)}\n[dim]{escape(r.repo_url)}[/dim]" if r.build_name else escape(r.repo_url)
        table.add_row(
            r.id,
            f"#{r.build_number}" if r.build_number is not None else "—",
            label,
            escape(r.branch),
            styled_status(r.status),
            f"{round_half_up(r.duration / 1000)}s" if r.duration > 0 else "",
            escape(", ".join(r.tags)),
            format_timestamp(r.timestamp),
        )

    console.print(table)
