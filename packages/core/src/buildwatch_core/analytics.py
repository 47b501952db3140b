"""Aggregate views over a list of builds.

Two shapes of input are accepted and may even be mixed:

- local records (BuildRecord or its dict form): status, build_number,
  duration in ms, ISO timestamp;
- raw builds from the server's builds list: result, building, number,
  duration in ms, epoch-ms timestamp.

Every function first normalizes its input into BuildSummary and computes from
that. Nothing here keeps state or mutates its input.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Iterable

from buildwatch_store.models import BuildRecord

logger = logging.getLogger(__name__)

DEFAULT_TREND_LIMIT = 10


@dataclass(frozen=True)
class BuildSummary:
    label: str
    status: str
    duration: int  # milliseconds
    timestamp: Any  # ISO string (local) or epoch ms (raw)
    succeeded: bool
    failed: bool
    running: bool


@dataclass(frozen=True)
class BuildStats:
    total: int = 0
    success: int = 0
    failed: int = 0
    running: int = 0
    avg_duration: int = 0  # seconds
    success_rate: int = 0  # percent


@dataclass(frozen=True)
class TrendPoint:
    label: str
    duration_seconds: int
    success: int  # 1 or 0


@dataclass(frozen=True)
class HourlyBucket:
    hour: int
    count: int

    @property
    def label(self) -> str:
        return f"{self.hour}:00"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _as_mapping(build: BuildRecord | dict) -> dict:
    if isinstance(build, BuildRecord):
        return build.to_dict()
    return build


def normalize(build: BuildRecord | dict) -> BuildSummary:
    data = _as_mapping(build)
    duration = int(data.get("duration") or 0)

    if "status" in data:
        status = str(data.get("status") or "")
        number = data.get("build_number")
        return BuildSummary(
            label=f"#{number}" if number is not None else "N/A",
            status=status,
            duration=duration,
            timestamp=data.get("timestamp"),
            succeeded=status == "SUCCESS",
            failed=status == "FAILED",
            running=status == "RUNNING",
        )

    result = data.get("result")
    building = bool(data.get("building"))
    number = data.get("number")
    return BuildSummary(
        label=f"#{number}" if number is not None else "N/A",
        status="RUNNING" if building else str(result or ""),
        duration=duration,
        timestamp=data.get("timestamp"),
        succeeded=result == "SUCCESS",
        failed=result == "FAILURE",
        running=building,
    )


def compute_stats(builds: Iterable[BuildRecord | dict]) -> BuildStats:
    summaries = [normalize(b) for b in builds]
    total = len(summaries)
    if total == 0:
        return BuildStats()

    success = sum(1 for s in summaries if s.succeeded)
    total_duration = sum(s.duration for s in summaries)
    return BuildStats(
        total=total,
        success=success,
        failed=sum(1 for s in summaries if s.failed),
        running=sum(1 for s in summaries if s.running),
        avg_duration=round_half_up(total_duration / total / 1000),
        success_rate=round_half_up(success / total * 100),
    )


def status_distribution(stats: BuildStats) -> list[tuple[str, int]]:
    """(name, count) slices for a status breakdown, empty slices dropped."""
    slices = [("Success", stats.success), ("Failed", stats.failed), ("Running", stats.running)]
    return [(name, value) for name, value in slices if value > 0]


def trend_series(builds: Iterable[BuildRecord | dict], limit: int = DEFAULT_TREND_LIMIT) -> list[TrendPoint]:
    """Duration trend for the most recent `limit` builds, oldest first.

    Input is expected most-recent-first, as both the history and the server's
    builds list are ordered.
    """
    recent = [normalize(b) for b in builds][: max(0, limit)]
    return [
        TrendPoint(
            label=s.label,
            duration_seconds=round_half_up(s.duration / 1000),
            success=1 if s.succeeded else 0,
        )
        for s in reversed(recent)
    ]


def _hour_of(timestamp: Any, tz: tzinfo | None) -> int | None:
    if timestamp is None or timestamp == "":
        return None
    try:
        if isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool):
            moment = datetime.fromtimestamp(timestamp / 1000, tz=tz)
        else:
            moment = datetime.fromisoformat(str(timestamp).replace("Z", "+00:00"))
            moment = moment.astimezone(tz)
    except (ValueError, OverflowError, OSError):
        return None
    return moment.hour


def hourly_histogram(builds: Iterable[BuildRecord | dict], tz: tzinfo | None = None) -> list[HourlyBucket]:
    """Builds per hour of day, sorted by hour. Local time unless tz is given."""
    counts: Counter[int] = Counter()
    for build in builds:
        summary = normalize(build)
        hour = _hour_of(summary.timestamp, tz)
        if hour is None:
            logger.debug("Skipping build %s with unreadable timestamp %r", summary.label, summary.timestamp)
            continue
        counts[hour] += 1
    return [HourlyBucket(hour=hour, count=counts[hour]) for hour in sorted(counts)]


def filter_builds(records: Iterable[BuildRecord], search: str = "", status: str = "ALL") -> list[BuildRecord]:
    """Dashboard filter: repository URL substring (case-insensitive) and exact status."""
    needle = search.lower()
    return [
        r
        for r in records
        if needle in (r.repo_url or "").lower() and (status == "ALL" or r.status == status)
    ]
