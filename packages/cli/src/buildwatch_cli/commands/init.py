"""init command — interactive setup wizard.

Writes .buildwatch.yml so every later command in the repository picks up the
same build server and history store. The repository URL is detected from the
git remote when possible and offered as the default for `buildwatch trigger`.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.markup import escape

console = Console()


@click.command("init")
@click.option("--path", "config_file", default=".buildwatch.yml", show_default=True, help="Config file to write.")
def init_cmd(config_file: str):
    """Set up buildwatch for this repository.

    Prompts for the build server, the job to read analytics from and the
    history store, then writes the answers to .buildwatch.yml.
    """
    console.print("\n[bold cyan]buildwatch init[/bold cyan] — setup wizard\n")

    repo_url = _detect_repo_from_git()
    if repo_url:
        console.print(f"[dim]Detected repository: {escape(repo_url)}[/dim]")

    api_url = click.prompt("Build server API URL", default="http://localhost:5000")
    jenkins_url = click.prompt("Jenkins URL", default="http://localhost:8082")
    job_name = click.prompt("Jenkins job name", default="Universal-Builder")
    polling_interval = click.prompt("Polling interval (ms)", type=click.IntRange(min=1), default=5000)

    # --- Choose store backend ---
    console.print("\nBuild history store:")
    console.print("  [bold]json[/bold]    — local JSON file (default)")
    console.print("  [bold]sqlite[/bold]  — local SQLite file")
    console.print("  [bold]memory[/bold]  — nothing is kept between runs")
    store_type = click.prompt(
        "Store backend",
        type=click.Choice(["json", "sqlite", "memory"]),
        default="json",
    )

    config: dict = {
        "api_url": api_url,
        "jenkins_url": jenkins_url,
        "job_name": job_name,
        "polling_interval": polling_interval,
        "store": store_type,
    }
    if repo_url:
        config["repo_url"] = repo_url

    if store_type in ("json", "sqlite"):
        default_path = ".buildwatch.json" if store_type == "json" else ".buildwatch.db"
        store_path = click.prompt("Store file path", default=default_path)
        if store_path != default_path:
            config["store_path"] = store_path

    _write_config(config, Path(config_file))
    console.print(f"[green]Created {config_file}[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Trigger a build with: [bold]buildwatch trigger {repo} --watch[/bold]".format(repo=escape(repo_url or "<repo-url>")))


def _detect_repo_from_git() -> str | None:
    """Return the origin remote URL, or None outside a git checkout."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    url = result.stdout.strip()
    # git@github.com:owner/repo.git  →  https://github.com/owner/repo.git
    if url.startswith("git@") and ":" in url:
        host, _, path = url[len("git@"):].partition(":")
        url = f"https://{host}/{path}"
    return url or None


def _write_config(config: dict, path: Path) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
