"""Trigger flow — ask the build server for a new build and start tracking it."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from buildwatch_core.errors import TriggerError
from buildwatch_core.lifecycle import QUEUED, now_ms
from buildwatch_store.models import BuildRecord

if TYPE_CHECKING:
    from buildwatch_core.client import BuildServerClient
    from buildwatch_store.history import BuildHistory

logger = logging.getLogger(__name__)

_id_lock = threading.Lock()
_last_id = 0


def new_build_id(clock: Callable[[], int] = now_ms) -> str:
    """Return a fresh build id.

    Ids are epoch milliseconds, bumped by one whenever two builds are
    triggered within the same millisecond, so they sort by trigger order and
    never repeat within a process.
    """
    global _last_id
    with _id_lock:
        candidate = clock()
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
        return str(candidate)


def trigger_build(
    client: BuildServerClient,
    history: BuildHistory,
    repo_url: str,
    branch: str = "main",
    build_name: str = "",
    clock: Callable[[], int] = now_ms,
) -> BuildRecord:
    """Trigger a build and append it to the history as QUEUED.

    Raises TriggerError for invalid input and lets BuildServerError from the
    client propagate. Nothing is added to the history on failure.
    """
    repo_url = (repo_url or "").strip()
    if not repo_url:
        raise TriggerError("GitHub Repository URL is required")
    branch = (branch or "").strip() or "main"

    result = client.trigger_build(repo_url, branch)

    started = clock()
    record = BuildRecord(
        id=new_build_id(clock),
        job_name=result.job_name,
        repo_url=repo_url,
        branch=branch,
        status=QUEUED,
        start_time=started,
        duration=0,
        tags=[],
        notes="",
        timestamp=datetime.fromtimestamp(started / 1000, tz=timezone.utc).isoformat(),
        build_name=build_name.strip(),
        message=result.message,
    )
    history.append(record)
    logger.info("Triggered build %s for %s (%s) as job %s", record.id, repo_url, branch, result.job_name)
    return record
