"""Build lifecycle: status state machine and progress estimation.

The state machine itself lives with the record model in buildwatch_store so
the store can refuse backward transitions on its own; it is re-exported here
for the polling engine and the CLI.
"""

from __future__ import annotations

import time

from buildwatch_store.models import (
    ABORTED,
    FAILED,
    QUEUED,
    RUNNING,
    SUCCESS,
    TERMINAL_STATUSES,
    can_transition,
    is_terminal,
    status_rank,
)

__all__ = [
    "ABORTED",
    "FAILED",
    "QUEUED",
    "RUNNING",
    "SUCCESS",
    "TERMINAL_STATUSES",
    "ProgressEstimator",
    "can_transition",
    "is_terminal",
    "now_ms",
    "status_rank",
]

PROGRESS_STEP = 10
PROGRESS_CAP = 90


def now_ms() -> int:
    return int(time.time() * 1000)


class ProgressEstimator:
    """Bounded visual progress for an in-flight build.

    Purely a display heuristic: it climbs by a fixed step on every RUNNING
    observation, never reaches 100 on its own and jumps to 100 once the build
    is terminal. It says nothing about real completion.
    """

    def __init__(self, step: int = PROGRESS_STEP, cap: int = PROGRESS_CAP):
        self.step = step
        self.cap = cap
        self.value = 0

    def observe(self, status: str) -> int:
        if is_terminal(status):
            self.value = 100
        elif status == RUNNING and self.value < self.cap:
            self.value = min(self.value + self.step, self.cap)
        return self.value
