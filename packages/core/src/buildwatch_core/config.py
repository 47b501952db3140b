import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "api_url": "http://localhost:5000",
    "jenkins_url": "http://localhost:8082",
    "polling_interval": 5000,  # milliseconds between status polls
    "job_name": "Universal-Builder",  # job whose builds list backs `stats --source server`
    "trend_limit": 10,
    "request_timeout": 10,  # seconds
    "store": "json",  # "memory" | "json" | "sqlite"
    "store_path": None,  # None = backend default (.buildwatch.json / .buildwatch.db)
    "repo_url": None,  # default REPO_URL for `buildwatch trigger`
}


def load_config(config_path: str = ".buildwatch.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .buildwatch.yml in the current directory
      3. CLI argument overrides
      4. BUILDWATCH_API_URL from the environment
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    api_url = os.environ.get("BUILDWATCH_API_URL")
    if api_url:
        config["api_url"] = api_url

    return config
