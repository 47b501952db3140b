"""CLI entry point for buildwatch.

Commands:
  trigger   — trigger a build and add it to the history
  watch     — poll active builds until they finish
  history   — dashboard: totals and the build table
  stats     — analytics over the history (or the server's builds list)
  logs      — fetch and display a build's log
  export    — write the history to CSV
  tag/note  — edit a build's tags and notes
  settings  — show or change persisted settings
  init      — interactive setup wizard
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from buildwatch_cli.commands.export import export_cmd
from buildwatch_cli.commands.history import history_cmd
from buildwatch_cli.commands.init import init_cmd
from buildwatch_cli.commands.logs import logs_cmd
from buildwatch_cli.commands.metadata import note_cmd, tag_cmd
from buildwatch_cli.commands.settings import settings_cmd
from buildwatch_cli.commands.stats import stats_cmd
from buildwatch_cli.commands.trigger import trigger_cmd, watch_cmd

console = Console()

_SETTINGS_KEYS = ("api_url", "jenkins_url", "polling_interval")


def _build_backend(config: dict):
    """Instantiate the configured persistence backend from .buildwatch.yml settings.

    Backend selection:
      store: json   → JSONFileBackend (store_path or .buildwatch.json), the default
      store: sqlite → SQLiteBackend   (store_path or .buildwatch.db)
      store: memory → MemoryBackend   (nothing survives the process)

    This factory lives in cli.py so neither buildwatch_core nor
    buildwatch_store know about the CLI config format.
    """
    store_type = config.get("store", "json")
    store_path = config.get("store_path")

    if store_type == "memory":
        from buildwatch_store.memory import MemoryBackend

        return MemoryBackend()

    if store_type == "sqlite":
        from buildwatch_store.sqlite import SQLiteBackend

        return SQLiteBackend(db_path=store_path or ".buildwatch.db")

    if store_type != "json":
        console.print(f"[yellow]Unknown store {store_type!r}. Falling back to the JSON file store.[/yellow]")

    from buildwatch_store.json_file import JSONFileBackend

    return JSONFileBackend(path=store_path or ".buildwatch.json")


def effective_settings(config: dict, preferences, overrides: dict | None = None) -> dict:
    """Resolve api_url, jenkins_url and polling_interval.

    Persisted settings (edited with `buildwatch settings`) win over the
    config file; explicit overrides win over both.
    """
    resolved = {key: config.get(key) for key in _SETTINGS_KEYS}
    if preferences is not None:
        resolved.update(preferences.saved_settings())
    for key, value in (overrides or {}).items():
        if value is not None:
            resolved[key] = value
    return resolved


def make_client(ctx: click.Context):
    from buildwatch_core.client import BuildServerClient

    settings = ctx.obj["settings"]
    return BuildServerClient(settings["api_url"], timeout=float(ctx.obj["config"].get("request_timeout", 10)))


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("buildwatch"),
    prog_name="buildwatch",
)
@click.option(
    "--config",
    "config_path",
    default=".buildwatch.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="BUILDWATCH_CONFIG",
)
@click.option("--api-url", default=None, help="Build server API base URL. Overrides settings and config file.")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, api_url: str | None, verbose: bool):
    """Trigger CI builds and track their lifecycle from the terminal."""
    from buildwatch_core.config import load_config
    from buildwatch_store.history import BuildHistory
    from buildwatch_store.preferences import Preferences

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)
    backend = _build_backend(config)
    preferences = Preferences(backend)

    ctx.obj["config"] = config
    ctx.obj["backend"] = backend
    ctx.obj["preferences"] = preferences
    ctx.obj["history"] = BuildHistory(backend)
    ctx.obj["settings"] = effective_settings(config, preferences, {"api_url": api_url})
    ctx.call_on_close(backend.close)


main.add_command(trigger_cmd)
main.add_command(watch_cmd)
main.add_command(history_cmd)
main.add_command(stats_cmd)
main.add_command(logs_cmd)
main.add_command(export_cmd)
main.add_command(tag_cmd)
main.add_command(note_cmd)
main.add_command(settings_cmd)
main.add_command(init_cmd)
