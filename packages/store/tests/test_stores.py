"""Tests for buildwatch-store backends and preferences."""

from __future__ import annotations

import json

import pytest

from buildwatch_store.history import BuildHistory
from buildwatch_store.json_file import JSONFileBackend
from buildwatch_store.memory import MemoryBackend
from buildwatch_store.models import BuildRecord
from buildwatch_store.preferences import DEFAULT_SETTINGS, Preferences
from buildwatch_store.sqlite import SQLiteBackend


def _make_record(build_id="1", status="QUEUED", tags=None):
    return BuildRecord(
        id=build_id,
        job_name="Universal-Builder",
        repo_url="https://github.com/acme/widgets",
        status=status,
        start_time=1_700_000_000_000,
        tags=tags or [],
        timestamp="2023-11-14T22:13:20+00:00",
    )


# ---------------------------------------------------------------------------
# MemoryBackend
# ---------------------------------------------------------------------------


class TestMemoryBackend:
    def test_missing_key_returns_none(self):
        assert MemoryBackend().load("build_history") is None

    def test_save_and_load(self):
        backend = MemoryBackend()
        backend.save("settings", {"api_url": "http://ci:5000"})
        assert backend.load("settings") == {"api_url": "http://ci:5000"}

    def test_loaded_value_is_a_copy(self):
        backend = MemoryBackend()
        backend.save("build_history", [{"id": "1"}])
        loaded = backend.load("build_history")
        loaded.append({"id": "2"})
        assert backend.load("build_history") == [{"id": "1"}]


# ---------------------------------------------------------------------------
# JSONFileBackend
# ---------------------------------------------------------------------------


class TestJSONFileBackend:
    def test_missing_file_loads_none(self, tmp_path):
        backend = JSONFileBackend(path=str(tmp_path / "state.json"))
        assert backend.load("build_history") is None

    def test_keys_are_independent(self, tmp_path):
        backend = JSONFileBackend(path=str(tmp_path / "state.json"))
        backend.save("build_history", [{"id": "1"}])
        backend.save("dark_mode", False)

        assert backend.load("build_history") == [{"id": "1"}]
        assert backend.load("dark_mode") is False

    def test_file_is_plain_json(self, tmp_path):
        path = tmp_path / "state.json"
        JSONFileBackend(path=str(path)).save("settings", {"polling_interval": 3000})
        assert json.loads(path.read_text()) == {"settings": {"polling_interval": 3000}}

    def test_corrupt_file_treated_as_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        backend = JSONFileBackend(path=str(path))
        assert backend.load("build_history") is None

        backend.save("build_history", [])
        assert backend.load("build_history") == []

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "state.json"
        JSONFileBackend(path=str(path)).save("dark_mode", True)
        assert path.exists()

    def test_no_temp_files_left_behind(self, tmp_path):
        backend = JSONFileBackend(path=str(tmp_path / "state.json"))
        backend.save("a", 1)
        backend.save("b", 2)
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


# ---------------------------------------------------------------------------
# SQLiteBackend
# ---------------------------------------------------------------------------


class TestSQLiteBackend:
    def test_save_and_load(self, tmp_path):
        backend = SQLiteBackend(db_path=str(tmp_path / "test.db"))
        backend.save("build_history", [{"id": "1", "tags": ["x"]}])
        assert backend.load("build_history") == [{"id": "1", "tags": ["x"]}]
        backend.close()

    def test_save_overwrites(self, tmp_path):
        backend = SQLiteBackend(db_path=str(tmp_path / "test.db"))
        backend.save("dark_mode", True)
        backend.save("dark_mode", False)
        assert backend.load("dark_mode") is False
        backend.close()

    def test_missing_key_returns_none(self, tmp_path):
        backend = SQLiteBackend(db_path=str(tmp_path / "test.db"))
        assert backend.load("settings") is None
        backend.close()

    def test_persists_across_connections(self, tmp_path):
        """Data written by one SQLiteBackend instance must be readable by another."""
        db = str(tmp_path / "test.db")
        first = SQLiteBackend(db_path=db)
        first.save("settings", {"api_url": "http://ci:5000"})
        first.close()

        second = SQLiteBackend(db_path=db)
        assert second.load("settings") == {"api_url": "http://ci:5000"}
        second.close()


# ---------------------------------------------------------------------------
# History persistence through real backends
# ---------------------------------------------------------------------------


class TestHistoryPersistence:
    @pytest.mark.parametrize("make_backend", [
        lambda p: JSONFileBackend(path=str(p / "state.json")),
        lambda p: SQLiteBackend(db_path=str(p / "state.db")),
    ])
    def test_history_survives_restart(self, tmp_path, make_backend):
        backend = make_backend(tmp_path)
        history = BuildHistory(backend)
        history.append(_make_record("1"))
        history.update_tags("1", ["release"])
        history.update_status("1", "RUNNING", duration=1000, build_number=7)
        backend.close()

        reloaded = BuildHistory(make_backend(tmp_path)).get("1")
        assert reloaded.status == "RUNNING"
        assert reloaded.build_number == 7
        assert reloaded.duration == 1000
        assert reloaded.tags == ["release"]

    def test_history_and_settings_do_not_clobber_each_other(self, tmp_path):
        backend = JSONFileBackend(path=str(tmp_path / "state.json"))
        history = BuildHistory(backend)
        prefs = Preferences(backend)

        history.append(_make_record("1"))
        prefs.update_settings(polling_interval=2000)
        prefs.set_dark_mode(False)
        history.update_notes("1", "flaky test")

        assert BuildHistory(backend).get("1").notes == "flaky test"
        assert Preferences(backend).settings()["polling_interval"] == 2000
        assert Preferences(backend).dark_mode() is False


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


class TestPreferences:
    def test_defaults(self):
        prefs = Preferences(MemoryBackend())
        assert prefs.settings() == DEFAULT_SETTINGS
        assert prefs.saved_settings() == {}
        assert prefs.dark_mode() is True

    def test_update_merges_with_saved(self):
        prefs = Preferences(MemoryBackend())
        prefs.update_settings(api_url="http://ci:5000")
        merged = prefs.update_settings(polling_interval=1000)

        assert merged["api_url"] == "http://ci:5000"
        assert merged["polling_interval"] == 1000
        assert merged["jenkins_url"] == DEFAULT_SETTINGS["jenkins_url"]
        assert prefs.saved_settings() == {"api_url": "http://ci:5000", "polling_interval": 1000}

    def test_none_values_ignored(self):
        prefs = Preferences(MemoryBackend())
        prefs.update_settings(api_url=None, polling_interval=2500)
        assert prefs.saved_settings() == {"polling_interval": 2500}

    def test_unknown_setting_rejected(self):
        with pytest.raises(ValueError, match="theme"):
            Preferences(MemoryBackend()).update_settings(theme="solarized")

    def test_non_positive_interval_rejected(self):
        prefs = Preferences(MemoryBackend())
        with pytest.raises(ValueError):
            prefs.update_settings(polling_interval=0)
        assert prefs.saved_settings() == {}

    def test_dark_mode_toggle(self):
        backend = MemoryBackend()
        Preferences(backend).set_dark_mode(False)
        assert Preferences(backend).dark_mode() is False

    def test_malformed_saved_settings_ignored(self):
        backend = MemoryBackend()
        backend.save("settings", ["not", "a", "dict"])
        assert Preferences(backend).settings() == DEFAULT_SETTINGS
