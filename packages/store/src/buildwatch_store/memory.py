"""In-memory backend — selected with `store: memory`; nothing survives the process.

State lives for the lifetime of the process only. Using a MemoryBackend
rather than None lets BuildHistory always persist without conditional checks.
"""

from __future__ import annotations

import copy
from typing import Any

from buildwatch_store.base import BaseBackend


class MemoryBackend(BaseBackend):
    """Keeps deep copies of saved values in a process-local dict."""

    def __init__(self):
        self._data: dict[str, Any] = {}

    def load(self, key: str) -> Any | None:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def save(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
