"""settings command — show or change persisted settings."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("settings")
@click.option("--api-url", "new_api_url", default=None, help="Build server API base URL.")
@click.option("--jenkins-url", default=None, help="Jenkins server URL.")
@click.option("--polling-interval", type=int, default=None, help="Polling interval in milliseconds.")
@click.option("--dark-mode/--light-mode", "dark_mode", default=None, help="Persist the display theme preference.")
@click.pass_context
def settings_cmd(
    ctx,
    new_api_url: str | None,
    jenkins_url: str | None,
    polling_interval: int | None,
    dark_mode: bool | None,
):
    """Show settings, or save new values with the options.

    Saved settings take precedence over .buildwatch.yml.
    """
    from buildwatch_cli.cli import effective_settings

    preferences = ctx.obj["preferences"]
    changes = {"api_url": new_api_url, "jenkins_url": jenkins_url, "polling_interval": polling_interval}

    if any(v is not None for v in changes.values()):
        try:
            preferences.update_settings(**changes)
        except ValueError as e:
            raise click.BadParameter(str(e))
        console.print("[green]Settings saved successfully![/green]")

    if dark_mode is not None:
        preferences.set_dark_mode(dark_mode)

    resolved = effective_settings(ctx.obj["config"], preferences)
    saved = preferences.saved_settings()

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_column("Source", style="dim")
    for key in ("api_url", "jenkins_url", "polling_interval"):
        table.add_row(key, str(resolved[key]), "saved" if key in saved else "config")
    table.add_row("dark_mode", "on" if preferences.dark_mode() else "off", "saved")
    console.print(table)
