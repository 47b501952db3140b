"""JSONFileBackend — zero-infrastructure local state in a single JSON file.

Why a single JSON file as the default store:
- Zero infra: nothing to provision, the file sits next to .buildwatch.yml.
- Human-readable: the build history can be inspected or hand-edited.
- Whole-object writes: every key lives in one JSON object, which is rewritten
  in full on each save. That matches how the build history itself is persisted
  (the full list on every mutation), so there is no partial-update format to
  keep consistent.

Writes go to a temporary file in the same directory followed by os.replace(),
so a crash mid-write leaves the previous file intact.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from buildwatch_store.base import BaseBackend

logger = logging.getLogger(__name__)


class JSONFileBackend(BaseBackend):
    """Stores every key in one JSON object on disk.

    The path defaults to `.buildwatch.json` in the current working directory.
    Configure via .buildwatch.yml: `store_path: /path/to/state.json`.
    """

    def __init__(self, path: str = ".buildwatch.json"):
        self._path = Path(path)

    def load(self, key: str) -> Any | None:
        return self._read_all().get(key)

    def save(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".buildwatch-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _read_all(self) -> dict:
        """Read the whole JSON object from disk, or return {}."""
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s, starting from empty state: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}
