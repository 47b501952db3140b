"""Tests for CSV export."""

from __future__ import annotations

import csv
import io

from buildwatch_core.export import HEADERS, export_filename, format_timestamp, to_csv, write_export
from buildwatch_store.history import BuildHistory
from buildwatch_store.memory import MemoryBackend
from buildwatch_store.models import BuildRecord


def _make_record(build_id="1", **kwargs):
    defaults = dict(
        job_name="Universal-Builder",
        repo_url="https://github.com/acme/widgets",
        status="SUCCESS",
        build_number=42,
        duration=90_400,
        tags=["release", "hotfix"],
        notes="",
        timestamp="not-a-date",
    )
    defaults.update(kwargs)
    return BuildRecord(id=build_id, **defaults)


def test_empty_history_is_header_only():
    assert to_csv([]) == "Build Number,Status,Repository,Duration (s),Tags,Notes,Timestamp"


def test_one_quoted_row_per_record():
    text = to_csv([_make_record("2"), _make_record("1", build_number=None, status="QUEUED", duration=0, tags=[])])
    lines = text.split("\n")
    assert len(lines) == 3
    assert lines[0] == ",".join(HEADERS)
    assert lines[1] == '"42","SUCCESS","https://github.com/acme/widgets","90","release, hotfix","","not-a-date"'
    assert lines[2] == '"N/A","QUEUED","https://github.com/acme/widgets","0","","","not-a-date"'
    assert not text.endswith("\n")


def test_quotes_and_newlines_in_notes_escaped():
    text = to_csv([_make_record(notes='said "ship it"\nthen left')])
    rows = list(csv.reader(io.StringIO(text)))
    assert rows[1][5] == 'said "ship it"\nthen left'
    assert '""ship it""' in text


def test_duration_rounds_half_up():
    text = to_csv([_make_record(duration=2_500)])
    assert '"3"' in text.split("\n")[1]


def test_format_timestamp_falls_back_to_raw_value():
    assert format_timestamp("garbage") == "garbage"
    assert format_timestamp("") == ""


def test_format_timestamp_formats_iso():
    assert format_timestamp("2024-03-01T14:05:00+00:00") != "2024-03-01T14:05:00+00:00"


def test_write_export(tmp_path):
    history = BuildHistory(MemoryBackend())
    history.append(_make_record("1"))
    history.append(_make_record("2", build_number=43))

    path = write_export(history, tmp_path, clock=lambda: 1_700_000_000_000)

    assert path.name == export_filename(1_700_000_000_000) == "build-history-1700000000000.csv"
    lines = path.read_text(encoding="utf-8").split("\n")
    assert lines[1].startswith('"43"')
    assert lines[2].startswith('"42"')
