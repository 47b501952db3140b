"""User preferences persisted next to the build history.

Two independent keys: the settings object and the dark-mode flag. Neither is
read or written together with the build history.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from buildwatch_store.base import BaseBackend

SETTINGS_KEY = "settings"
DARK_MODE_KEY = "dark_mode"

DEFAULT_SETTINGS: dict = {
    "jenkins_url": "http://localhost:8082",
    "polling_interval": 5000,  # milliseconds
    "api_url": "http://localhost:5000",
}


class Preferences:
    def __init__(self, backend: BaseBackend):
        self._backend = backend

    def saved_settings(self) -> dict:
        """Only the settings that were explicitly saved."""
        saved = self._backend.load(SETTINGS_KEY)
        if not isinstance(saved, dict):
            return {}
        return {k: v for k, v in saved.items() if k in DEFAULT_SETTINGS and v is not None}

    def settings(self) -> dict:
        """Return persisted settings merged over the defaults."""
        return {**DEFAULT_SETTINGS, **self.saved_settings()}

    def update_settings(self, **changes: Any) -> dict:
        """Merge non-None changes into the persisted settings and return them."""
        unknown = set(changes) - set(DEFAULT_SETTINGS)
        if unknown:
            raise ValueError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
        polling_interval = changes.get("polling_interval")
        if polling_interval is not None and int(polling_interval) <= 0:
            raise ValueError("polling_interval must be a positive number of milliseconds.")

        saved = self.saved_settings()
        saved.update({k: v for k, v in changes.items() if v is not None})
        self._backend.save(SETTINGS_KEY, saved)
        return {**DEFAULT_SETTINGS, **saved}

    def dark_mode(self) -> bool:
        saved = self._backend.load(DARK_MODE_KEY)
        return bool(saved) if saved is not None else True

    def set_dark_mode(self, enabled: bool) -> None:
        self._backend.save(DARK_MODE_KEY, bool(enabled))
