"""Build history data models.

Decoupled from buildwatch_core so the store layer can be used independently
and the polling engine has no knowledge of how records are serialized.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields

QUEUED = "QUEUED"
RUNNING = "RUNNING"
SUCCESS = "SUCCESS"
FAILED = "FAILED"
ABORTED = "ABORTED"

TERMINAL_STATUSES = frozenset({SUCCESS, FAILED, ABORTED})

# QUEUED → RUNNING → {SUCCESS | FAILED | ABORTED}. Statuses the build server
# reports that we do not recognize rank alongside RUNNING: they are shown
# verbatim and polling continues.
_STATUS_RANK = {QUEUED: 0, RUNNING: 1}
_TERMINAL_RANK = 2


def is_terminal(status: str | None) -> bool:
    return status in TERMINAL_STATUSES


def status_rank(status: str) -> int:
    if status in TERMINAL_STATUSES:
        return _TERMINAL_RANK
    return _STATUS_RANK.get(status, 1)


def can_transition(current: str, new: str) -> bool:
    """Return True if a record in `current` may move to `new`.

    Terminal statuses are absorbing and nothing moves backwards.
    """
    if is_terminal(current):
        return False
    return status_rank(new) >= status_rank(current)


@dataclass
class BuildRecord:
    """One triggered build as tracked locally.

    Created by the trigger flow with status QUEUED. The reconciler owns
    status/build_number/duration; the user owns tags/notes.
    """

    id: str
    job_name: str
    repo_url: str
    branch: str = "main"
    status: str = QUEUED  # may also hold an unrecognized status verbatim
    build_number: int | None = None
    start_time: int | None = None  # epoch milliseconds
    duration: int = 0  # milliseconds
    tags: list[str] = field(default_factory=list)
    notes: str = ""
    timestamp: str = ""  # ISO-8601 creation time
    build_name: str = ""
    message: str = ""

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> BuildRecord:
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in d.items() if k in known}
        data["id"] = str(data.get("id", ""))
        data.setdefault("job_name", "")
        data.setdefault("repo_url", "")
        data["tags"] = list(data.get("tags") or [])
        data["notes"] = data.get("notes") or ""
        data["duration"] = int(data.get("duration") or 0)
        return cls(**data)
