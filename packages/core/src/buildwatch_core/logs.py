"""Build log retrieval and line classification.

fetch_logs() always returns something renderable: a failed fetch becomes a
single error line instead of an exception.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from buildwatch_core.errors import BuildServerError

if TYPE_CHECKING:
    from buildwatch_core.client import BuildServerClient

logger = logging.getLogger(__name__)

NO_LOGS = "No logs available"

ERROR = "error"
SUCCESS = "success"
WARNING = "warning"
DEFAULT = "default"

_RULES = (
    (ERROR, ("error", "failed")),
    (SUCCESS, ("success", "finished")),
    (WARNING, ("warning",)),
)


def fetch_logs(client: BuildServerClient, job_name: str, build_number: int) -> str:
    try:
        text = client.get_logs(job_name, build_number)
    except BuildServerError as e:
        logger.warning("Could not fetch logs for %s #%s: %s", job_name, build_number, e)
        return f"Error fetching logs: {e}"
    return text or NO_LOGS


def classify_line(line: str) -> str:
    lowered = line.lower()
    for line_class, needles in _RULES:
        if any(n in lowered for n in needles):
            return line_class
    return DEFAULT


def classify_lines(text: str) -> list[tuple[str, str]]:
    return [(classify_line(line), line) for line in text.split("\n")]


def log_filename(job_name: str, build_number: int) -> str:
    return f"{job_name}-build-{build_number}.log"


def write_log_file(text: str, job_name: str, build_number: int, directory: str | Path = ".") -> Path:
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / log_filename(job_name, build_number)
    path.write_text(text, encoding="utf-8")
    return path
