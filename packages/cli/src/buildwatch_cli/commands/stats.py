"""stats command — analytics over the build history."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from buildwatch_core.analytics import compute_stats, hourly_histogram, status_distribution, trend_series
from buildwatch_core.errors import BuildServerError

console = Console()


def _load_builds(ctx, source: str, job_name: str) -> tuple[list, str]:
    """Return (builds, description of where they came from).

    auto prefers the local history and falls back to the server's builds
    list when nothing has been tracked yet.
    """
    from buildwatch_cli.cli import make_client

    if source in ("auto", "local"):
        records = ctx.obj["history"].all()
        if records or source == "local":
            return records, "local history"

    client = make_client(ctx)
    try:
        return client.list_builds(job_name), f"server builds for {job_name}"
    except BuildServerError as e:
        console.print(f"[yellow]Could not fetch builds from the server: {escape(e.message)}[/yellow]")
        return [], f"server builds for {job_name}"
    finally:
        client.close()


@click.command("stats")
@click.option(
    "--source",
    type=click.Choice(["auto", "local", "server"]),
    default="auto",
    show_default=True,
    help="Where to read builds from.",
)
@click.option("--job", "job_name", default=None, help="Job whose builds list to read (server source).")
@click.option("--trend", "trend_limit", type=int, default=None, help="Number of recent builds in the duration trend.")
@click.pass_context
def stats_cmd(ctx, source: str, job_name: str | None, trend_limit: int | None):
    """Show build analytics: success rate, durations, and when builds run.

    Reads the local history by default; with no local history (or
    --source server) it reads the build server's builds list instead.
    """
    config = ctx.obj["config"]
    job_name = job_name or config.get("job_name", "Universal-Builder")
    trend_limit = trend_limit if trend_limit is not None else int(config.get("trend_limit", 10))

    builds, origin = _load_builds(ctx, source, job_name)
    if not builds:
        console.print("[yellow]No builds found.[/yellow]")
        return

    stats = compute_stats(builds)

    # --- Summary ---
    console.print(f"\n[bold]Build analytics[/bold] [dim]({origin})[/dim]")
    console.print(f"  Total builds:  {stats.total}")
    console.print(f"  Success rate:  {stats.success_rate}%")
    console.print(f"  Avg duration:  {stats.avg_duration}s")
    console.print(f"  Running:       {stats.running}")

    # --- Status distribution ---
    distribution = status_distribution(stats)
    if distribution:
        dist_table = Table(title="Build Status Distribution", show_header=True)
        dist_table.add_column("Status", style="bold")
        dist_table.add_column("Count", justify="right")
        dist_table.add_column("% of total", justify="right")
        _dist_style = {"Success": "green", "Failed": "red", "Running": "blue"}
        for name, count in distribution:
            style = _dist_style.get(name, "white")
            dist_table.add_row(f"[{style}]{escape(name)}[/{style}]", str(count), f"{count / stats.total * 100:.0f}%")
        console.print(dist_table)

    # --- Duration trend ---
    trend = trend_series(builds, limit=trend_limit)
    if trend:
        trend_table = Table(title=f"Duration Trend (last {len(trend)})", show_header=True)
        trend_table.add_column("Build")
        trend_table.add_column("Seconds", justify="right")
        trend_table.add_column("Result")
        for point in trend:
            result = "[green]✓[/green]" if point.success else "[red]✗[/red]"
            trend_table.add_row(point.label, str(point.duration_seconds), result)
        console.print(trend_table)

    # --- Builds by hour ---
    buckets = hourly_histogram(builds)
    if buckets:
        hour_table = Table(title="Builds by Hour", show_header=True)
        hour_table.add_column("Hour")
        hour_table.add_column("Builds", justify="right")
        hour_table.add_column("")
        peak = max(b.count for b in buckets)
        for bucket in buckets:
            bar = "█" * max(1, round(bucket.count / peak * 20))
            hour_table.add_row(bucket.label, str(bucket.count), f"[blue]{bar}[/blue]")
        console.print(hour_table)
