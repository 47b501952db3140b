"""Tests for the trigger flow."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from buildwatch_core.client import TriggerResult
from buildwatch_core.errors import BuildServerError, TriggerError
from buildwatch_core.trigger import new_build_id, trigger_build
from buildwatch_store.history import BuildHistory
from buildwatch_store.memory import MemoryBackend


def _client(job_name="Universal-Builder", message="Build triggered successfully"):
    client = MagicMock()
    client.trigger_build.return_value = TriggerResult(job_name=job_name, message=message)
    return client


def test_records_queued_build():
    history = BuildHistory(MemoryBackend())
    record = trigger_build(_client(), history, " https://github.com/acme/widgets ", branch="develop", build_name="nightly", clock=lambda: 1_700_000_000_000)

    assert record.status == "QUEUED"
    assert record.job_name == "Universal-Builder"
    assert record.repo_url == "https://github.com/acme/widgets"
    assert record.branch == "develop"
    assert record.build_name == "nightly"
    assert record.start_time == 1_700_000_000_000
    assert record.timestamp == "2023-11-14T22:13:20+00:00"
    assert record.build_number is None
    assert record.tags == []
    assert history.all() == [record]


def test_branch_defaults_to_main():
    client = _client()
    record = trigger_build(client, BuildHistory(MemoryBackend()), "https://github.com/acme/widgets", branch="  ")
    assert record.branch == "main"
    client.trigger_build.assert_called_once_with("https://github.com/acme/widgets", "main")


def test_missing_repo_url_rejected_before_request():
    client = _client()
    history = BuildHistory(MemoryBackend())
    with pytest.raises(TriggerError, match="GitHub Repository URL is required"):
        trigger_build(client, history, "   ")
    client.trigger_build.assert_not_called()
    assert len(history) == 0


def test_server_failure_leaves_history_untouched():
    client = MagicMock()
    client.trigger_build.side_effect = BuildServerError("Jenkins unreachable", status_code=500, error_type="server")
    history = BuildHistory(MemoryBackend())

    with pytest.raises(BuildServerError):
        trigger_build(client, history, "https://github.com/acme/widgets")
    assert len(history) == 0


def test_ids_unique_within_same_millisecond():
    ids = [new_build_id(lambda: 5) for _ in range(5)]
    assert len(set(ids)) == 5
    assert ids == sorted(ids, key=int)


def test_two_triggers_same_instant_both_recorded():
    history = BuildHistory(MemoryBackend())
    clock = lambda: 1_800_000_000_000  # noqa: E731
    first = trigger_build(_client(), history, "https://github.com/acme/a", clock=clock)
    second = trigger_build(_client(), history, "https://github.com/acme/b", clock=clock)
    assert first.id != second.id
    assert [r.id for r in history.all()] == [second.id, first.id]
