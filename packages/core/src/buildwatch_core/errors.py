"""Exceptions raised by buildwatch_core."""

from __future__ import annotations


class BuildwatchError(Exception):
    """Base class for errors surfaced to the user."""


class BuildServerError(BuildwatchError):
    """A request to the build server API failed.

    error_type is one of "network", "validation", "server" or "unknown" so
    callers can word the message without inspecting status codes.
    """

    def __init__(self, message: str, status_code: int | None = None, error_type: str = "unknown"):
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        super().__init__(message)


class TriggerError(BuildwatchError):
    """A build could not be triggered because the request was invalid."""
