"""Telemetry sinks — optional per-record logging of g-force samples.

The CSV sink keeps one row per received datagram with columns
``lapTime,horizontal,longitudinal``. The longitudinal column is sign-inverted
from the wire value so that forward acceleration is positive.
"""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import IO, Protocol

from airdrivr.telemetry.models import TelemetryRecord

_logger = logging.getLogger(__name__)

CSV_HEADER = ("lapTime", "horizontal", "longitudinal")


class SinkUnavailableError(OSError):
    """Raised when the log file cannot be opened."""


class TelemetrySink(Protocol):
    """Anything the receive loop can forward records to."""

    def write(self, record: TelemetryRecord) -> None: ...

    def close(self) -> None: ...


class NullSink:
    """Sink that discards everything."""

    def write(self, record: TelemetryRecord) -> None:
        pass

    def close(self) -> None:
        pass


class CsvTelemetrySink:
    """Appends ``lap_time, lateral g, longitudinal g`` rows to a CSV file.

    Use :meth:`open` or :meth:`open_in` rather than the constructor.
    """

    def __init__(self, fh: IO[str], path: Path) -> None:
        self._fh = fh
        self._writer = csv.writer(fh, lineterminator="\n")
        self.path = path

    @classmethod
    def open(cls, path: str | Path) -> CsvTelemetrySink:
        """Open *path* for appending and write the header row.

        Raises
        ------
        SinkUnavailableError
            If the file cannot be opened.
        """
        path = Path(path)
        try:
            fh = path.open("a", encoding="utf-8", newline="")
        except OSError as exc:
            raise SinkUnavailableError(f"Cannot open telemetry log {str(path)!r}: {exc}") from exc
        sink = cls(fh, path)
        sink._writer.writerow(CSV_HEADER)
        _logger.info("Logging g-force samples to %s", path)
        return sink

    @classmethod
    def open_in(cls, directory: str | Path, now: datetime | None = None) -> CsvTelemetrySink:
        """Create *directory* if needed and open a file named after *now*."""
        directory = Path(directory)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SinkUnavailableError(
                f"Cannot create log directory {str(directory)!r}: {exc}"
            ) from exc
        stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S-%f")
        return cls.open(directory / f"{stamp}.csv")

    @property
    def closed(self) -> bool:
        return self._fh.closed

    def write(self, record: TelemetryRecord) -> None:
        self._writer.writerow((record.lap_time, record.acc_g_horizontal, -record.acc_g_frontal))

    def append_line(self, text: str) -> None:
        """Append a raw, already formatted line."""
        self._fh.write(text.rstrip("\n") + "\n")

    def close(self) -> None:
        """Flush and close the file. Safe to call twice."""
        if self._fh.closed:
            return
        self._fh.flush()
        self._fh.close()
