"""ACListener — handshake, subscribe and dismiss over the AC UDP protocol."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from airdrivr.config import ListenerConfig
from airdrivr.telemetry.cache import TelemetryCache
from airdrivr.telemetry.codec import MalformedPacketError, decode, encode
from airdrivr.telemetry.models import (
    DISMISS,
    HANDSHAKE,
    SUBSCRIBE_UPDATE,
    ConnectionState,
    HandshakeRequest,
    HandshakeResponse,
    TelemetryRecord,
)
from airdrivr.telemetry.receiver import ReceiveLoop
from airdrivr.telemetry.sink import CsvTelemetrySink, NullSink, TelemetrySink
from airdrivr.telemetry.transport import NetworkError, UDPTransport

_logger = logging.getLogger(__name__)


class AlreadyConnectingError(RuntimeError):
    """Raised (and reported) when connect() is called during a handshake."""


@dataclass
class _Session:
    transport: UDPTransport
    sink: TelemetrySink
    loop: ReceiveLoop | None = None


class ACListener:
    """Manages one telemetry session with the simulator and tracks its state.

    ``connect()`` runs the handshake on the calling thread and then receives
    telemetry on a background thread; the caller polls :meth:`read_latest`
    once per tick.

    Parameters
    ----------
    config:
        Endpoint, timeouts and logging options. Defaults to
        :class:`~airdrivr.config.ListenerConfig` defaults.
    transport_factory:
        ``factory(host, port)`` returning an unopened transport. Injected for
        testability; defaults to :class:`UDPTransport`.
    sink_factory:
        Zero-argument callable opening a :class:`TelemetrySink` per session.
        Defaults to a timestamped CSV file in ``config.log_dir`` when
        ``config.log_enabled`` is set, otherwise no logging.
    cache:
        Where decoded records are published.
    """

    def __init__(
        self,
        config: ListenerConfig | None = None,
        transport_factory: Callable[[str, int], UDPTransport] | None = None,
        sink_factory: Callable[[], TelemetrySink] | None = None,
        cache: TelemetryCache | None = None,
    ) -> None:
        self._config = config or ListenerConfig()
        self._transport_factory = transport_factory or UDPTransport
        if sink_factory is None and self._config.log_enabled:
            log_dir = self._config.log_dir
            sink_factory = lambda: CsvTelemetrySink.open_in(log_dir)  # noqa: E731
        self._sink_factory = sink_factory
        self._cache = cache or TelemetryCache()

        self._lock = threading.Lock()
        self._state = ConnectionState.DISCONNECTED
        self._session: _Session | None = None
        self._last_error: Exception | None = None
        self._handshake: HandshakeResponse | None = None
        self._callbacks: list[Callable[[bool], None]] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def config(self) -> ListenerConfig:
        return self._config

    @property
    def cache(self) -> TelemetryCache:
        return self._cache

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """True while subscribed and receiving telemetry."""
        return self._state is ConnectionState.CONNECTED

    @property
    def last_error(self) -> Exception | None:
        """The error that ended the last connect attempt or session, if any."""
        return self._last_error

    @property
    def handshake(self) -> HandshakeResponse | None:
        """Server identification from the last successful handshake."""
        return self._handshake

    def read_latest(self) -> TelemetryRecord | None:
        """Return the newest decoded record, or ``None`` if none arrived yet."""
        return self._cache.read()

    def connect(self) -> bool:
        """Handshake, subscribe and start receiving telemetry.

        An existing session is torn down first. Blocks for at most
        ``config.handshake_timeout`` seconds waiting for the reply.

        Returns
        -------
        bool
            True once subscribed. False if a handshake is already running or
            the exchange failed; the reason is in :attr:`last_error`.
        """
        with self._lock:
            state = self._state
        if state is ConnectionState.CONNECTED:
            _logger.warning("Already connected; disconnecting before reconnecting")
            self.disconnect()

        with self._lock:
            rejected = None
            if self._state is not ConnectionState.DISCONNECTED:
                rejected = AlreadyConnectingError(
                    f"Cannot start handshake while {self._state.value}"
                )
                self._last_error = rejected
            else:
                self._state = ConnectionState.CONNECTING
                self._last_error = None
        if rejected is not None:
            _logger.warning("%s", rejected)
            return False

        try:
            session = self._open_session()
        except NetworkError as exc:
            with self._lock:
                self._state = ConnectionState.DISCONNECTED
                self._last_error = exc
            cfg = self._config
            _logger.warning("Connecting to %s:%d failed: %s", cfg.host, cfg.port, exc)
            return False
        except BaseException:
            with self._lock:
                self._state = ConnectionState.DISCONNECTED
            raise

        with self._lock:
            self._session = session
            self._state = ConnectionState.CONNECTED
        session.loop.start()
        self._fire_callbacks(True)
        return True

    def disconnect(self) -> None:
        """Dismiss the subscription and release the socket and log file.

        No-op unless connected. The dismiss is best-effort; the session is
        torn down without waiting for the server.
        """
        with self._lock:
            if self._state is not ConnectionState.CONNECTED:
                return
            self._state = ConnectionState.DISCONNECTING
            session, self._session = self._session, None

        self._teardown(session, notify_server=True)

        with self._lock:
            self._state = ConnectionState.DISCONNECTED
        self._fire_callbacks(False)

    def register_callback(self, callback: Callable[[bool], None]) -> None:
        """Register *callback(connected: bool)* for connection state changes."""
        self._callbacks.append(callback)

    def __enter__(self) -> ACListener:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _open_session(self) -> _Session:
        cfg = self._config
        self._cache.clear()
        self._handshake = None
        transport = self._transport_factory(cfg.host, cfg.port)
        try:
            transport.open()
            _logger.info("Initiating handshake with %s:%d", cfg.host, cfg.port)
            transport.send(encode(HandshakeRequest.for_operation(HANDSHAKE)))
            reply = transport.receive(timeout=cfg.handshake_timeout)
            try:
                self._handshake = decode(HandshakeResponse, reply)
            except MalformedPacketError as exc:
                _logger.warning("Unreadable handshake response, subscribing anyway: %s", exc)
            else:
                _logger.info("Handshake response: %s", self._handshake)

            transport.send(encode(HandshakeRequest.for_operation(SUBSCRIBE_UPDATE)))
            _logger.info("Subscribed to telemetry updates")

            session = _Session(transport=transport, sink=self._open_sink())
            session.loop = ReceiveLoop(
                transport,
                self._cache,
                sink=session.sink,
                receive_timeout=cfg.receive_timeout,
                on_error=lambda exc: self._drop_session(session, exc),
            )
        except BaseException:
            transport.close()
            raise
        return session

    def _open_sink(self) -> TelemetrySink:
        if self._sink_factory is None:
            return NullSink()
        try:
            return self._sink_factory()
        except OSError as exc:
            _logger.warning("Telemetry logging disabled for this session: %s", exc)
            return NullSink()

    def _teardown(self, session: _Session, notify_server: bool) -> None:
        if notify_server:
            try:
                session.transport.send(encode(HandshakeRequest.for_operation(DISMISS)))
            except NetworkError as exc:
                _logger.warning("Dismiss notification failed: %s", exc)
            else:
                _logger.info("Unsubscribed from telemetry updates")

        session.loop.stop()
        session.transport.close()  # unblocks the receive loop
        session.loop.join()

        try:
            session.sink.close()
        except OSError as exc:
            _logger.warning("Closing telemetry log failed: %s", exc)

    def _drop_session(self, session: _Session, exc: NetworkError) -> None:
        """Called from the receive loop when the transport fails under it."""
        with self._lock:
            if self._session is not session or self._state is not ConnectionState.CONNECTED:
                return
            self._state = ConnectionState.DISCONNECTING
            self._session = None
            self._last_error = exc

        self._teardown(session, notify_server=False)

        with self._lock:
            self._state = ConnectionState.DISCONNECTED
        self._fire_callbacks(False)

    def _fire_callbacks(self, state: bool) -> None:
        for cb in self._callbacks:
            cb(state)
