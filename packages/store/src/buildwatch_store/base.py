"""Abstract persistence backend.

The build history, the settings object and the dark-mode flag are stored as
independent keys in a key-value backend (in-memory, JSON file, SQLite). The
CLI depends on BaseBackend, not on a concrete backend, so backends are
swappable without touching the history or preferences code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseBackend(ABC):
    """Key-value persistence for JSON-serializable values.

    There is no cross-key transaction: every key is read and written
    independently.
    """

    @abstractmethod
    def load(self, key: str) -> Any | None:
        """Return the value stored under key.

        Returns None if the key is missing or unreadable; never raises.
        """

    @abstractmethod
    def save(self, key: str, value: Any) -> None:
        """Replace the value stored under key."""

    def close(self) -> None:
        """Release any resources held by the backend (connections, file handles).

        Subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
