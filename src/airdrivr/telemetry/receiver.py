"""ReceiveLoop — background thread turning datagrams into cached records."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from airdrivr.telemetry.cache import TelemetryCache
from airdrivr.telemetry.codec import MalformedPacketError, decode
from airdrivr.telemetry.models import TelemetryRecord
from airdrivr.telemetry.sink import NullSink, TelemetrySink
from airdrivr.telemetry.transport import NetworkError, TransportTimeout

_logger = logging.getLogger(__name__)


class ReceiveLoop:
    """Receives telemetry on a daemon thread and publishes it into a cache.

    A malformed datagram is dropped without ending the loop. The loop ends
    when :meth:`stop` has been called and the owner closes the transport,
    which makes the blocked ``receive`` fail.

    Parameters
    ----------
    transport:
        Object with ``receive(timeout) -> bytes``.
    cache:
        Destination for every decoded record.
    sink:
        Optional :class:`~airdrivr.telemetry.sink.TelemetrySink`; disabled for
        the rest of the session after its first write error.
    receive_timeout:
        Seconds per ``receive`` call; bounds how long :meth:`stop` can go
        unnoticed if the transport is never closed.
    on_error:
        Called with the exception when the transport fails while the loop was
        not asked to stop.
    """

    def __init__(
        self,
        transport,
        cache: TelemetryCache,
        sink: TelemetrySink | None = None,
        receive_timeout: float = 0.5,
        on_error: Callable[[NetworkError], None] | None = None,
    ) -> None:
        self._transport = transport
        self._cache = cache
        self._sink = sink if sink is not None else NullSink()
        self._timeout = receive_timeout
        self._on_error = on_error
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._malformed_logged = False
        self.received = 0
        self.dropped = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background receive thread."""
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="ACReceiveLoop")
        self._thread.start()

    def stop(self) -> None:
        """Ask the loop to exit after the current ``receive`` returns."""
        self._stop_event.set()

    def join(self, timeout: float | None = 2.0) -> None:
        """Wait for the thread to finish. No-op when called from the loop itself."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=timeout)
        if thread.is_alive():
            _logger.warning("Receive loop did not exit within %.1fs", timeout)
        else:
            self._thread = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                data = self._transport.receive(timeout=self._timeout)
            except TransportTimeout:
                continue
            except NetworkError as exc:
                if not self._stop_event.is_set():
                    _logger.warning("Receive loop stopped: %s", exc)
                    if self._on_error is not None:
                        self._on_error(exc)
                return

            self.received += 1
            try:
                record = decode(TelemetryRecord, data)
            except MalformedPacketError as exc:
                self.dropped += 1
                self._log_malformed(exc)
                continue

            self._malformed_logged = False
            self._cache.publish(record)
            self._forward(record)

    def _forward(self, record: TelemetryRecord) -> None:
        try:
            self._sink.write(record)
        except Exception as exc:
            _logger.warning("Telemetry log write failed, logging disabled: %s", exc)
            self._sink = NullSink()

    def _log_malformed(self, exc: MalformedPacketError) -> None:
        if not self._malformed_logged:
            _logger.warning("Dropping malformed telemetry datagram: %s", exc)
            self._malformed_logged = True
        else:
            _logger.debug("Dropping malformed telemetry datagram: %s", exc)
