"""BuildHistory — the single source of truth for tracked builds.

The history is persisted as one list under one backend key, so every mutation
re-serializes the whole collection. Two writers touching different fields of
the same record (the reconciler writing status, the user writing tags) must
therefore never work from a stale copy of the list. All mutations here are
field-scoped and applied under a lock against the list as currently stored:
reload from the backend, apply one field, write back. Another process
(a `watch` running next to a `tag` command) may have written in between, so
the in-memory list is never trusted as the latest state. Readers only ever
receive copies.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import TYPE_CHECKING

from buildwatch_store.models import BuildRecord, can_transition, is_terminal

if TYPE_CHECKING:
    from buildwatch_store.base import BaseBackend

logger = logging.getLogger(__name__)

HISTORY_KEY = "build_history"


class DuplicateBuildError(ValueError):
    """Raised when appending a record whose id is already tracked."""


class BuildHistory:
    """Ordered, most-recent-first collection of BuildRecord.

    Update operations return True when the record changed and False when the
    call was a no-op (unknown id, terminal record, backwards transition).
    An unknown id is never an error.
    """

    def __init__(self, backend: BaseBackend, key: str = HISTORY_KEY):
        self._backend = backend
        self._key = key
        self._lock = threading.RLock()
        self._dirty = False
        self._records: list[BuildRecord] = self._load()

    # ------------------------------------------------------------------ #
    # Reads                                                                #
    # ------------------------------------------------------------------ #

    def all(self) -> list[BuildRecord]:
        with self._lock:
            self._refresh()
            return [copy.deepcopy(r) for r in self._records]

    def get(self, build_id: str) -> BuildRecord | None:
        with self._lock:
            self._refresh()
            record = self._find(build_id)
            return copy.deepcopy(record) if record is not None else None

    def active(self) -> list[BuildRecord]:
        """Records that still need polling: non-terminal with a known job."""
        with self._lock:
            self._refresh()
            return [copy.deepcopy(r) for r in self._records if r.job_name and not is_terminal(r.status)]

    def __len__(self) -> int:
        with self._lock:
            self._refresh()
            return len(self._records)

    # ------------------------------------------------------------------ #
    # Mutations                                                            #
    # ------------------------------------------------------------------ #

    def append(self, record: BuildRecord) -> None:
        """Insert a newly triggered build at the head of the history."""
        with self._lock:
            self._refresh()
            if self._find(record.id) is not None:
                raise DuplicateBuildError(f"Build {record.id!r} is already tracked.")
            self._records.insert(0, copy.deepcopy(record))
            self._persist()

    def update_status(
        self,
        build_id: str,
        status: str,
        duration: int | None = None,
        build_number: int | None = None,
    ) -> bool:
        """Apply a status observation to one record.

        duration replaces the stored value when given. build_number is only
        recorded if the record has none yet. Tags and notes are never touched.
        """
        with self._lock:
            self._refresh()
            record = self._find(build_id)
            if record is None:
                logger.debug("update_status: unknown build %s, ignoring", build_id)
                return False
            if not can_transition(record.status, status):
                logger.debug(
                    "update_status: build %s stays %s (refused %s)",
                    build_id,
                    record.status,
                    status,
                )
                return False

            changed = False
            if record.status != status:
                record.status = status
                changed = True
            if duration is not None and record.duration != duration:
                record.duration = duration
                changed = True
            if build_number is not None and record.build_number is None:
                record.build_number = build_number
                changed = True

            if changed:
                self._persist()
            return changed

    def update_tags(self, build_id: str, tags: list[str]) -> bool:
        with self._lock:
            self._refresh()
            record = self._find(build_id)
            if record is None:
                logger.debug("update_tags: unknown build %s, ignoring", build_id)
                return False
            record.tags = list(tags)
            self._persist()
            return True

    def update_notes(self, build_id: str, notes: str) -> bool:
        with self._lock:
            self._refresh()
            record = self._find(build_id)
            if record is None:
                logger.debug("update_notes: unknown build %s, ignoring", build_id)
                return False
            record.notes = notes
            self._persist()
            return True

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _find(self, build_id: str) -> BuildRecord | None:
        for record in self._records:
            if record.id == build_id:
                return record
        return None

    def _refresh(self) -> None:
        # After a failed write the backend is behind us; keep the in-memory
        # list until a save succeeds.
        if not self._dirty:
            self._records = self._load()

    def _load(self) -> list[BuildRecord]:
        raw = self._backend.load(self._key) or []
        if not isinstance(raw, list):
            logger.warning("Ignoring malformed build history (expected a list, got %s)", type(raw).__name__)
            return []
        records = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                records.append(BuildRecord.from_dict(item))
            except (TypeError, ValueError) as e:
                logger.warning("Skipping unreadable build record: %s", e)
        return records

    def _persist(self) -> None:
        try:
            self._backend.save(self._key, [r.to_dict() for r in self._records])
        except Exception as e:
            self._dirty = True
            # Never lose the in-memory update because a write failed; the next
            # successful write re-serializes the full list.
            logger.warning("Could not persist build history (%s): %s", type(e).__name__, e)
        else:
            self._dirty = False
