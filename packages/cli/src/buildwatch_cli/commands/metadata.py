"""tag and note commands — edit a build's user metadata.

Only the tags or notes field is written; status and duration stay whatever
the reconciler last recorded, even while the build is being watched.
"""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

console = Console()


def _require(history, build_id: str):
    record = history.get(build_id)
    if record is None:
        raise click.ClickException(f"No build with id {build_id!r}. Run `buildwatch history` to list builds.")
    return record


@click.command("tag")
@click.argument("build_id")
@click.option("--add", "added", multiple=True, help="Tag to add (repeatable).")
@click.option("--remove", "removed", multiple=True, help="Tag to remove (repeatable).")
@click.option("--clear", is_flag=True, help="Remove all tags before adding.")
@click.pass_context
def tag_cmd(ctx, build_id: str, added: tuple[str, ...], removed: tuple[str, ...], clear: bool):
    """Add or remove tags on BUILD_ID. With no options, print its tags."""
    history = ctx.obj["history"]
    record = _require(history, build_id)

    if not (added or removed or clear):
        console.print(escape(", ".join(record.tags)) if record.tags else "[dim]No tags.[/dim]")
        return

    tags = [] if clear else list(record.tags)
    for tag in added:
        tag = tag.strip()
        if tag and tag not in tags:
            tags.append(tag)
    tags = [t for t in tags if t not in removed]

    history.update_tags(build_id, tags)
    console.print(f"[green]Tags for {escape(build_id)}:[/green] {escape(', '.join(tags)) if tags else '(none)'}")


@click.command("note")
@click.argument("build_id")
@click.argument("text", required=False)
@click.pass_context
def note_cmd(ctx, build_id: str, text: str | None):
    """Set the notes of BUILD_ID to TEXT. With no TEXT, print the notes.

    Pass an empty string to clear them.
    """
    history = ctx.obj["history"]
    record = _require(history, build_id)

    if text is None:
        console.print(escape(record.notes) if record.notes else "[dim]No notes.[/dim]")
        return

    history.update_notes(build_id, text)
    console.print(f"[green]Notes saved for {escape(build_id)}.[/green]")
