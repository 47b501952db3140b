"""Reconciliation engine — merges polled status into the build history.

One asyncio task per watched build, keyed by build id. Each task sleeps for
the polling interval, asks its StatusPoller for an observation and hands it to
reconcile(), which writes status/build_number/duration through the history's
field-scoped update. The task ends on its own once the stored record is
terminal, or when it is cancelled.

Everything here runs on a single event loop. The blocking HTTP call inside a
poll is the only suspension point, and a result that comes back after its
task was cancelled is dropped rather than applied.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable

from buildwatch_core.lifecycle import can_transition, now_ms
from buildwatch_core.poller import StatusPoller

if TYPE_CHECKING:
    from buildwatch_core.client import BuildServerClient, StatusObservation
    from buildwatch_store.history import BuildHistory
    from buildwatch_store.models import BuildRecord

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 5000

UpdateListener = Callable[["BuildRecord", int], None]


class Reconciler:
    """Owns the polling tasks for every watched build."""

    def __init__(
        self,
        history: BuildHistory,
        client: BuildServerClient,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        clock: Callable[[], int] = now_ms,
        on_update: UpdateListener | None = None,
    ):
        self._history = history
        self._client = client
        self._interval = max(0, interval_ms) / 1000
        self._clock = clock
        self._on_update = on_update
        self._pollers: dict[str, StatusPoller] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------ #
    # Task management                                                      #
    # ------------------------------------------------------------------ #

    def watch(self, build_id: str) -> bool:
        """Start polling one build. Must be called with a running event loop.

        Idempotent while the build is already being watched. Returns False
        when there is nothing to poll (unknown id, no job name, terminal).
        """
        task = self._tasks.get(build_id)
        if task is not None and not task.done():
            return True

        record = self._history.get(build_id)
        if record is None or not record.job_name or record.is_terminal:
            return False

        poller = self._pollers.get(build_id)
        if poller is None or poller.cancelled:
            poller = self._new_poller(record)
            self._pollers[build_id] = poller
        self._tasks[build_id] = asyncio.create_task(self._poll_loop(build_id, poller), name=f"poll-{build_id}")
        logger.debug("Watching build %s (job %s)", build_id, record.job_name)
        return True

    def watch_active(self) -> list[str]:
        """Start polling every non-terminal build in the history."""
        return [record.id for record in self._history.active() if self.watch(record.id)]

    def cancel(self, build_id: str) -> None:
        poller = self._pollers.get(build_id)
        if poller is not None:
            poller.cancel()
        task = self._tasks.pop(build_id, None)
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Cancelled polling for build %s", build_id)

    def cancel_all(self) -> None:
        for build_id in list(self._tasks):
            self.cancel(build_id)

    def watching(self) -> list[str]:
        return [build_id for build_id, task in self._tasks.items() if not task.done()]

    async def wait(self) -> None:
        """Wait until every watched build is terminal or cancelled."""
        while self._tasks:
            tasks = list(self._tasks.values())
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error("Polling task failed: %s", result, exc_info=result)
            for build_id, task in list(self._tasks.items()):
                if task.done():
                    del self._tasks[build_id]

    async def close(self) -> None:
        # cancel() forgets the tasks, so hold on to them until they unwind.
        tasks = list(self._tasks.values())
        self.cancel_all()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Reconciliation                                                       #
    # ------------------------------------------------------------------ #

    def reconcile(self, build_id: str, observation: StatusObservation) -> BuildRecord | None:
        """Merge one observation into the stored record.

        Returns the updated record, or None if the observation was discarded
        (unknown build, already terminal, backwards transition, or a build
        number belonging to another run of the same job).
        """
        record = self._history.get(build_id)
        if record is None:
            logger.debug("Observation for unknown build %s discarded", build_id)
            return None
        if not can_transition(record.status, observation.status):
            logger.debug("Build %s is %s; observation %s discarded", build_id, record.status, observation.status)
            return None
        if (
            record.build_number is not None
            and observation.build_number is not None
            and observation.build_number != record.build_number
        ):
            logger.debug(
                "Build %s is #%s; observation for #%s discarded",
                build_id,
                record.build_number,
                observation.build_number,
            )
            return None

        poller = self._pollers.get(build_id)
        if poller is None:
            poller = self._new_poller(record)
            self._pollers[build_id] = poller

        duration = poller.duration_for(observation)
        self._history.update_status(build_id, observation.status, duration, observation.build_number)
        progress = poller.progress.observe(observation.status)

        updated = self._history.get(build_id)
        if updated is None:
            return None
        if updated.is_terminal:
            logger.info("Build %s finished with %s after %d ms", build_id, updated.status, updated.duration)
        self._notify(updated, progress)
        return updated

    def progress(self, build_id: str) -> int:
        record = self._history.get(build_id)
        if record is not None and record.is_terminal:
            return 100
        poller = self._pollers.get(build_id)
        return poller.progress.value if poller is not None else 0

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _new_poller(self, record: BuildRecord) -> StatusPoller:
        poller = StatusPoller(self._client, record.job_name, start_time=record.start_time, clock=self._clock)
        poller.last_duration = record.duration
        return poller

    async def _poll_loop(self, build_id: str, poller: StatusPoller) -> None:
        try:
            while not poller.cancelled:
                await asyncio.sleep(self._interval)
                observation = await poller.poll_once()
                if poller.cancelled:
                    logger.debug("Build %s was cancelled mid-poll; result dropped", build_id)
                    return
                if observation is None:
                    continue
                self.reconcile(build_id, observation)
                current = self._history.get(build_id)
                if current is None or current.is_terminal:
                    return
        finally:
            if self._tasks.get(build_id) is asyncio.current_task():
                del self._tasks[build_id]

    def _notify(self, record: BuildRecord, progress: int) -> None:
        if self._on_update is None:
            return
        try:
            self._on_update(record, progress)
        except Exception:
            logger.exception("Update listener failed for build %s", record.id)
