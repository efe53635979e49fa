"""In-memory monitoring state.

One `Store` instance is created per process (see `heartbeat.main`) and handed to
request handlers through `app.state`. It holds:

- a bounded history of check records per target,
- the last observed status per target, used to detect transitions,
- a bounded, newest-first incident log,
- sliding-window rate-limit buckets,
- the confirmed-email table, snapshotted to disk on every change.

All of it sits behind a single lock. Critical sections only touch in-memory
structures; the confirmed-email snapshot is written after the lock is released.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Mapping

import structlog

from heartbeat.models.domain import CheckRecord, Incident, Status, Target
from heartbeat.storage.confirmations import load_confirmed, normalize_email, save_confirmed
from heartbeat.utils.clock import now_ms

logger = structlog.get_logger()

MAX_HISTORY_PER_TARGET = 500
MAX_INCIDENTS = 200
RATE_SWEEP_INTERVAL_MS = 60_000

DEFAULT_STATUS_MESSAGES: dict[Status, str] = {
    Status.DOWN: "Service went DOWN",
    Status.HEALTHY: "Service recovered",
    Status.DEGRADED: "Service is DEGRADED",
}


class Store:
    def __init__(
        self,
        confirm_store_path: str | None = None,
        clock: Callable[[], int] = now_ms,
        status_messages: Mapping[str, str] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        # Serializes snapshot writes without holding the main lock during I/O
        self._persist_lock = threading.Lock()
        self._clock = clock

        self._history: dict[str, deque[CheckRecord]] = {}
        self._last_status: dict[str, Status] = {}
        self._incidents: deque[Incident] = deque(maxlen=MAX_INCIDENTS)
        self._rate_buckets: dict[str, list[int]] = {}
        self._rate_windows: dict[str, int] = {}
        self._rate_swept_at = clock()

        self._messages = dict(DEFAULT_STATUS_MESSAGES)
        for status, message in (status_messages or {}).items():
            try:
                self._messages[Status(str(status).upper())] = str(message)
            except ValueError:
                logger.warning("unknown_status_message_key", status=status)

        self._confirm_store_path = confirm_store_path
        self._confirmed: dict[str, int] = load_confirmed(confirm_store_path)

    # -- checks and incidents -------------------------------------------------

    def record_check(self, target: Target, record: CheckRecord) -> Incident | None:
        """Append a check, update the last status, and return an incident on transition."""
        with self._lock:
            history = self._history.get(target.id)
            if history is None:
                history = deque(maxlen=MAX_HISTORY_PER_TARGET)
                self._history[target.id] = history
            history.append(record)

            previous = self._last_status.get(target.id)
            self._last_status[target.id] = record.status
            if previous is None or previous == record.status:
                return None

            ts = self._clock()
            incident = Incident(
                id=self._unique_incident_id(f"{ts}_{target.id}_{record.status.value}"),
                timestamp_ms=ts,
                target_id=target.id,
                target_name=target.name,
                new_status=record.status,
                message=self.status_message(record.status),
            )
            self._incidents.appendleft(incident)

        logger.info(
            "incident_created",
            incident_id=incident.id,
            target_id=target.id,
            previous=previous.value,
            status=record.status.value,
        )
        return incident

    def _unique_incident_id(self, base: str) -> str:
        taken = {i.id for i in self._incidents}
        if base not in taken:
            return base
        n = 2
        while f"{base}_{n}" in taken:
            n += 1
        return f"{base}_{n}"

    def status_message(self, status: Status) -> str:
        return self._messages.get(status, "Status changed")

    def get_history(self, target_id: str, limit: int = 0) -> list[CheckRecord]:
        """Most recent `limit` records in chronological order. `limit <= 0` returns everything."""
        with self._lock:
            records = list(self._history.get(target_id, ()))
        if limit <= 0 or limit > len(records):
            limit = len(records)
        return records[len(records) - limit:]

    def get_incidents(self, limit: int = 0) -> list[Incident]:
        """Most recent `limit` incidents, newest first."""
        with self._lock:
            incidents = list(self._incidents)
        if limit <= 0 or limit > len(incidents):
            limit = len(incidents)
        return incidents[:limit]

    def last_status(self, target_id: str) -> Status | None:
        with self._lock:
            return self._last_status.get(target_id)

    # -- rate limiting --------------------------------------------------------

    def allow(self, key: str, window_ms: int, max_count: int) -> bool:
        """Sliding-window limiter: admit at most `max_count` events per `window_ms` for `key`."""
        now = self._clock()
        cutoff = now - window_ms
        with self._lock:
            if now - self._rate_swept_at >= RATE_SWEEP_INTERVAL_MS:
                self._sweep_rate_buckets(now)
            self._rate_windows[key] = window_ms
            recent = [ts for ts in self._rate_buckets.get(key, ()) if ts >= cutoff]
            if len(recent) >= max_count:
                self._rate_buckets[key] = recent
                return False
            recent.append(now)
            self._rate_buckets[key] = recent
            return True

    def _sweep_rate_buckets(self, now: int) -> None:
        """Drop keys with no event left inside their window. Caller holds the lock."""
        for key in list(self._rate_buckets):
            window_ms = self._rate_windows.get(key, 0)
            if all(ts < now - window_ms for ts in self._rate_buckets[key]):
                del self._rate_buckets[key]
                self._rate_windows.pop(key, None)
        self._rate_swept_at = now

    # -- email confirmation ---------------------------------------------------

    def is_confirmed(self, email: str) -> bool:
        with self._lock:
            return normalize_email(email) in self._confirmed

    def mark_confirmed(self, email: str) -> None:
        key = normalize_email(email)
        if not key:
            return
        with self._persist_lock:
            with self._lock:
                self._confirmed[key] = self._clock()
                snapshot = dict(self._confirmed)
            save_confirmed(self._confirm_store_path, snapshot)

    def confirmed_emails(self) -> dict[str, int]:
        with self._lock:
            return dict(self._confirmed)
