"""Tests for configuration loading."""

from buildwatch_core.config import load_config


def test_defaults_applied_when_no_config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("BUILDWATCH_API_URL", raising=False)
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["api_url"] == "http://localhost:5000"
    assert config["jenkins_url"] == "http://localhost:8082"
    assert config["polling_interval"] == 5000
    assert config["job_name"] == "Universal-Builder"
    assert config["store"] == "json"
    assert config["store_path"] is None


def test_config_file_overrides_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("BUILDWATCH_API_URL", raising=False)
    cfg = tmp_path / ".buildwatch.yml"
    cfg.write_text("api_url: http://ci:5000\npolling_interval: 2000\nstore: sqlite\n")
    config = load_config(config_path=str(cfg))
    assert config["api_url"] == "http://ci:5000"
    assert config["polling_interval"] == 2000
    assert config["store"] == "sqlite"


def test_empty_config_file(tmp_path):
    cfg = tmp_path / ".buildwatch.yml"
    cfg.write_text("")
    assert load_config(config_path=str(cfg))["trend_limit"] == 10


def test_cli_overrides_config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("BUILDWATCH_API_URL", raising=False)
    cfg = tmp_path / ".buildwatch.yml"
    cfg.write_text("job_name: Nightly\n")
    config = load_config(config_path=str(cfg), cli_overrides={"job_name": "Release"})
    assert config["job_name"] == "Release"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".buildwatch.yml"
    cfg.write_text("job_name: Nightly\n")
    config = load_config(config_path=str(cfg), cli_overrides={"job_name": None})
    assert config["job_name"] == "Nightly"


def test_env_var_wins_for_api_url(tmp_path, monkeypatch):
    monkeypatch.setenv("BUILDWATCH_API_URL", "http://env:5000")
    cfg = tmp_path / ".buildwatch.yml"
    cfg.write_text("api_url: http://file:5000\n")
    assert load_config(config_path=str(cfg))["api_url"] == "http://env:5000"
