"""HTTP client for the build server API.

The build server fronts the CI engine with four endpoints:

    POST /api/build                     → {jobName, message}
    GET  /api/status/{jobName}          → {status, buildNumber, duration?}
    GET  /api/logs/{jobName}/{number}   → {logs}
    GET  /api/builds/{jobName}          → {builds: [{number, result, building, duration, timestamp}]}

Every failure is raised as BuildServerError with an error_type so callers can
decide between surfacing it (trigger) and degrading quietly (polling, logs).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import quote

import requests

from buildwatch_core.errors import BuildServerError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerResult:
    job_name: str
    message: str = ""


@dataclass(frozen=True)
class StatusObservation:
    """One answer from the status endpoint.

    status is passed through verbatim; build_number and duration are None
    until the CI engine knows them.
    """

    status: str
    build_number: int | None = None
    duration: int | None = None


def _classify_error(status_code: int | None) -> str:
    if status_code is None:
        return "network"
    if 400 <= status_code < 500:
        return "validation"
    if 500 <= status_code < 600:
        return "server"
    return "unknown"


def _error_message(response: requests.Response) -> str:
    """Prefer the server's {"error": ...} body over the bare status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"{response.status_code} {response.reason or ''}".strip()


def _optional_int(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class BuildServerClient:
    """Thin requests-based client, one Session per instance."""

    def __init__(self, base_url: str, timeout: float = 10.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    # ------------------------------------------------------------------ #
    # Endpoints                                                            #
    # ------------------------------------------------------------------ #

    def trigger_build(self, repo_url: str, branch: str = "main") -> TriggerResult:
        data = self._request("POST", "/api/build", json={"repoUrl": repo_url, "branch": branch})
        job_name = data.get("jobName")
        if not job_name:
            raise BuildServerError("Build server did not return a job name.", error_type="server")
        return TriggerResult(job_name=str(job_name), message=str(data.get("message") or ""))

    def get_status(self, job_name: str) -> StatusObservation:
        data = self._request("GET", f"/api/status/{quote(job_name, safe='')}")
        status = data.get("status")
        if not status:
            raise BuildServerError(f"Status response for {job_name} has no status.", error_type="server")
        return StatusObservation(
            status=str(status),
            build_number=_optional_int(data.get("buildNumber")),
            duration=_optional_int(data.get("duration")),
        )

    def get_logs(self, job_name: str, build_number: int) -> str:
        data = self._request("GET", f"/api/logs/{quote(job_name, safe='')}/{int(build_number)}")
        return str(data.get("logs") or "")

    def list_builds(self, job_name: str) -> list[dict]:
        data = self._request("GET", f"/api/builds/{quote(job_name, safe='')}")
        builds = data.get("builds") or []
        return [b for b in builds if isinstance(b, dict)]

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------ #
    # Transport                                                            #
    # ------------------------------------------------------------------ #

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise BuildServerError(f"Network error: {e}", error_type="network") from e
        except requests.RequestException as e:
            raise BuildServerError(str(e)) from e

        if not response.ok:
            error_type = _classify_error(response.status_code)
            message = _error_message(response)
            logger.debug("%s %s failed with status %s (%s): %s", method, url, response.status_code, error_type, message)
            raise BuildServerError(message, status_code=response.status_code, error_type=error_type)

        try:
            data = response.json()
        except ValueError as e:
            raise BuildServerError(f"Invalid JSON from {url}", status_code=response.status_code, error_type="server") from e
        if not isinstance(data, dict):
            raise BuildServerError(f"Unexpected response shape from {url}", error_type="server")
        return data
