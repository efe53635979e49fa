from __future__ import annotations


class HeartbeatError(Exception):
    """Base class for errors raised by the monitor."""


class DatastoreError(HeartbeatError):
    """The project list could not be loaded from the datastore."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
