"""trigger and watch commands — start builds and follow them to completion."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from buildwatch_core.analytics import round_half_up
from buildwatch_core.errors import BuildServerError, TriggerError
from buildwatch_core.reconciler import Reconciler
from buildwatch_core.trigger import trigger_build

console = Console()

STATUS_STYLE = {
    "SUCCESS": "green",
    "FAILED": "red",
    "ABORTED": "magenta",
    "RUNNING": "blue",
    "QUEUED": "yellow",
}


def styled_status(status: str) -> str:
    style = STATUS_STYLE.get(status, "white")
    return f"[{style}]{escape(status)}[/{style}]"


def _describe(record) -> str:
    label = record.build_name or record.repo_url
    number = f" #{record.build_number}" if record.build_number is not None else ""
    return f"{escape(label)}{number}"


async def watch_builds(history, client, interval_ms: int, build_ids: list[str]) -> None:
    """Poll the given builds with a live progress display until they settle."""
    columns = (
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TextColumn("{task.fields[status]}"),
    )
    with Progress(*columns, console=console) as progress:
        bars: dict[str, int] = {}

        def on_update(record, pct: int) -> None:
            bar = bars.get(record.id)
            if bar is not None:
                progress.update(bar, completed=pct, description=_describe(record), status=styled_status(record.status))

        reconciler = Reconciler(history, client, interval_ms=interval_ms, on_update=on_update)
        for build_id in build_ids:
            record = history.get(build_id)
            if record is None:
                console.print(f"[yellow]Unknown build {escape(build_id)}, skipping.[/yellow]")
                continue
            if not reconciler.watch(build_id):
                console.print(f"Build {escape(build_id)} is already {styled_status(record.status)}.")
                continue
            bars[build_id] = progress.add_task(
                _describe(record),
                total=100,
                completed=reconciler.progress(build_id),
                status=styled_status(record.status),
            )

        try:
            await reconciler.wait()
        finally:
            await reconciler.close()


def _run_watch(ctx: click.Context, build_ids: list[str]) -> None:
    from buildwatch_cli.cli import make_client

    history = ctx.obj["history"]
    client = make_client(ctx)
    interval_ms = int(ctx.obj["settings"]["polling_interval"])
    try:
        asyncio.run(watch_builds(history, client, interval_ms, build_ids))
    except KeyboardInterrupt:
        console.print("[yellow]Stopped watching. Run `buildwatch watch` to resume.[/yellow]")
        return
    finally:
        client.close()

    for build_id in build_ids:
        record = history.get(build_id)
        if record is not None and record.is_terminal:
            console.print(f"{_describe(record)}: {styled_status(record.status)} in {round_half_up(record.duration / 1000)}s")


@click.command("trigger")
@click.argument("repo_url", required=False)
@click.option("--branch", default="main", show_default=True, help="Branch to build.")
@click.option("--name", "build_name", default="", help="Label for this build in the history.")
@click.option("--watch", "watch", is_flag=True, help="Follow the build until it finishes.")
@click.pass_context
def trigger_cmd(ctx, repo_url: str, branch: str, build_name: str, watch: bool):
    """Trigger a build of REPO_URL and add it to the history as QUEUED.

    REPO_URL defaults to repo_url from .buildwatch.yml.
    """
    from buildwatch_cli.cli import make_client

    repo_url = repo_url or ctx.obj["config"].get("repo_url") or ""
    client = make_client(ctx)
    try:
        record = trigger_build(client, ctx.obj["history"], repo_url, branch=branch, build_name=build_name)
    except TriggerError as e:
        raise click.UsageError(str(e))
    except BuildServerError as e:
        raise click.ClickException(f"Failed to trigger build: {e.message}")
    finally:
        client.close()

    console.print(f"[green]{escape(record.message or 'Build triggered successfully')}[/green]")
    console.print(f"  id: [bold]{record.id}[/bold]  job: {escape(record.job_name)}  branch: {escape(record.branch)}")

    if watch:
        _run_watch(ctx, [record.id])


@click.command("watch")
@click.argument("build_ids", nargs=-1)
@click.pass_context
def watch_cmd(ctx, build_ids: tuple[str, ...]):
    """Poll builds until they finish.

    Watches the given BUILD_IDS, or every build that is still queued or
    running. Ctrl-C stops all polling; nothing is lost, run watch again later.
    """
    history = ctx.obj["history"]
    ids = list(build_ids) or [r.id for r in history.active()]
    if not ids:
        console.print("[yellow]No active builds to watch.[/yellow]")
        return
    _run_watch(ctx, ids)
