"""Status poller — one per build being watched.

A poller knows how to ask the status source about its job and how to turn an
answer into a duration and a progress value. It does not write anywhere: the
Reconciler decides what an observation means for the stored record.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable

from buildwatch_core.errors import BuildServerError
from buildwatch_core.lifecycle import RUNNING, ProgressEstimator, is_terminal, now_ms

if TYPE_CHECKING:
    from buildwatch_core.client import BuildServerClient, StatusObservation

logger = logging.getLogger(__name__)


class StatusPoller:
    def __init__(
        self,
        client: BuildServerClient,
        job_name: str,
        start_time: int | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.client = client
        self.job_name = job_name
        self.start_time = start_time
        self.clock = clock
        self.progress = ProgressEstimator()
        self.last_duration = 0
        self.cancelled = False

    async def poll_once(self) -> StatusObservation | None:
        """Query the status source once.

        Returns None when the poll failed; a failed poll is never a failed
        build, so the caller simply waits for the next tick.
        """
        try:
            return await asyncio.to_thread(self.client.get_status, self.job_name)
        except BuildServerError as e:
            logger.warning("Status poll for %s skipped (%s): %s", self.job_name, e.error_type, e.message)
            return None

    def duration_for(self, observation: StatusObservation) -> int | None:
        """Duration in ms to record alongside an observation, or None to leave it."""
        status = observation.status
        if status == RUNNING:
            if self.start_time:
                self.last_duration = max(0, self.clock() - self.start_time)
            elif observation.duration is not None:
                self.last_duration = observation.duration
            else:
                return None
            return self.last_duration
        if is_terminal(status):
            if self.start_time:
                return max(0, self.clock() - self.start_time)
            if observation.duration is not None:
                return observation.duration
            return self.last_duration
        return None

    def cancel(self) -> None:
        self.cancelled = True
