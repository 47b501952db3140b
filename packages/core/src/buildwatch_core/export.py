"""CSV export of the build history."""

from __future__ import annotations

import csv
import io
from datetime import datetime, tzinfo
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable

from buildwatch_core.analytics import round_half_up
from buildwatch_core.lifecycle import now_ms

if TYPE_CHECKING:
    from buildwatch_store.history import BuildHistory
    from buildwatch_store.models import BuildRecord

HEADERS = ["Build Number", "Status", "Repository", "Duration (s)", "Tags", "Notes", "Timestamp"]
TAG_SEPARATOR = ", "
MISSING_BUILD_NUMBER = "N/A"


def format_timestamp(timestamp: str, tz: tzinfo | None = None) -> str:
    """Render an ISO timestamp in the locale's date and time format."""
    try:
        moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return str(timestamp or "")
    return moment.astimezone(tz).strftime("%x %X")


def _row(record: BuildRecord, tz: tzinfo | None) -> list[str]:
    return [
        str(record.build_number) if record.build_number is not None else MISSING_BUILD_NUMBER,
        record.status,
        record.repo_url,
        str(round_half_up((record.duration or 0) / 1000)),
        TAG_SEPARATOR.join(record.tags or []),
        record.notes or "",
        format_timestamp(record.timestamp, tz),
    ]


def to_csv(records: Iterable[BuildRecord], tz: tzinfo | None = None) -> str:
    """Serialize records, in the order given, under a plain header row.

    Every data cell is double-quoted. An empty history yields the header only.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for record in records:
        writer.writerow(_row(record, tz))
    body = buf.getvalue()
    header = ",".join(HEADERS)
    return f"{header}\n{body[:-1]}" if body else header


def export_filename(now: int) -> str:
    return f"build-history-{now}.csv"


def write_export(
    history: BuildHistory,
    directory: str | Path = ".",
    clock: Callable[[], int] = now_ms,
    tz: tzinfo | None = None,
) -> Path:
    """Write the current history to build-history-<epoch ms>.csv in directory."""
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / export_filename(clock())
    path.write_text(to_csv(history.all(), tz=tz), encoding="utf-8")
    return path
