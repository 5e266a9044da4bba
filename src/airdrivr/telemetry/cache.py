"""TelemetryCache — the most recently decoded record, shared across threads."""

from __future__ import annotations

import threading

from airdrivr.telemetry.models import TelemetryRecord


class TelemetryCache:
    """Holds exactly one :class:`TelemetryRecord` — the latest one published.

    Records are immutable, so publishing is a reference swap: readers observe
    either the previous record or the new one, never a mix. The lock guards
    only that swap; callers never see it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._record: TelemetryRecord | None = None
        self._count = 0

    def publish(self, record: TelemetryRecord) -> None:
        """Replace the cached record. Called only by the receive loop."""
        with self._lock:
            self._record = record
            self._count += 1

    def read(self) -> TelemetryRecord | None:
        """Return the latest record, or ``None`` if nothing was published yet."""
        with self._lock:
            return self._record

    def clear(self) -> None:
        """Forget the cached record (start of a new session)."""
        with self._lock:
            self._record = None
            self._count = 0

    @property
    def published_count(self) -> int:
        """Number of records published since the last :meth:`clear`."""
        with self._lock:
            return self._count
