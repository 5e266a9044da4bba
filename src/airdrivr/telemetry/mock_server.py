"""MockACServer — loopback stand-in for the simulator's telemetry endpoint.

Answers handshakes, tracks subscribers and pushes telemetry datagrams to
them on demand. Used by ``scripts/mock_ac_server.py`` and the end-to-end
tests; it is not a faithful reproduction of the game.
"""

from __future__ import annotations

import logging
import math
import socket
import threading
from dataclasses import replace

from airdrivr.telemetry.codec import MalformedPacketError, decode, encode
from airdrivr.telemetry.models import (
    DISMISS,
    HANDSHAKE,
    SUBSCRIBE_SPOT,
    SUBSCRIBE_UPDATE,
    HandshakeRequest,
    HandshakeResponse,
    TelemetryRecord,
)

_logger = logging.getLogger(__name__)

DEFAULT_RESPONSE = HandshakeResponse(
    car_name="ks_mazda_mx5_cup",
    driver_name="Player",
    identifier=4242,
    version=1,
    track_name="magione",
    track_config="",
)


def blank_record(**fields) -> TelemetryRecord:
    """Return an all-zero :class:`TelemetryRecord` with *fields* overridden."""
    zeros = (0.0, 0.0, 0.0, 0.0)
    base = TelemetryRecord(
        identifier="a",
        size=328,
        speed_kmh=0.0,
        speed_mph=0.0,
        speed_ms=0.0,
        is_abs_enabled=False,
        is_abs_in_action=False,
        is_tc_in_action=False,
        is_tc_enabled=False,
        is_in_pit=False,
        is_engine_limiter_on=False,
        acc_g_vertical=0.0,
        acc_g_horizontal=0.0,
        acc_g_frontal=0.0,
        lap_time=0,
        last_lap=0,
        best_lap=0,
        lap_count=0,
        gas=0.0,
        brake=0.0,
        clutch=0.0,
        engine_rpm=0.0,
        steer=0.0,
        gear=0,
        cg_height=0.0,
        wheel_angular_speed=zeros,
        slip_angle=zeros,
        slip_angle_contact_patch=zeros,
        slip_ratio=zeros,
        tyre_slip=zeros,
        nd_slip=zeros,
        load=zeros,
        dy=zeros,
        mz=zeros,
        tyre_dirty_level=zeros,
        camber_rad=zeros,
        tyre_radius=zeros,
        tyre_loaded_radius=zeros,
        suspension_height=zeros,
        car_position_normalized=0.0,
        car_slope=0.0,
        car_coordinates=(0.0, 0.0, 0.0),
    )
    return replace(base, **fields)


def synthetic_record(t: float) -> TelemetryRecord:
    """A car weaving through a slalom: lateral and longitudinal g oscillate."""
    return blank_record(
        speed_kmh=120.0 + 20.0 * math.sin(t / 3.0),
        acc_g_horizontal=1.2 * math.sin(t),
        acc_g_frontal=0.6 * math.cos(t / 2.0),
        lap_time=int(t * 1000),
        gear=4,
        engine_rpm=6000.0,
    )


class MockACServer:
    """Minimal UDP server speaking the handshake / subscribe / dismiss protocol.

    Parameters
    ----------
    host, port:
        Address to bind. Port 0 lets the OS choose; see :attr:`address`.
    response:
        Handshake reply payload; raw ``bytes`` are sent verbatim.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 9996,
        response: HandshakeResponse | bytes = DEFAULT_RESPONSE,
    ) -> None:
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._sock.bind((host, port))
        self._sock.settimeout(0.2)
        self._response = response
        self._lock = threading.Lock()
        self._subscribed = threading.Condition(self._lock)
        self._subscribers: set[tuple[str, int]] = set()
        self._spot_subscribers: set[tuple[str, int]] = set()
        self._thread: threading.Thread | None = None
        self._running = False
        self.requests: list[HandshakeRequest] = []

    @property
    def address(self) -> tuple[str, int]:
        return self._sock.getsockname()

    @property
    def subscribers(self) -> set[tuple[str, int]]:
        with self._lock:
            return set(self._subscribers)

    @property
    def spot_subscribers(self) -> set[tuple[str, int]]:
        """Clients subscribed to lap events; the mock never sends any."""
        with self._lock:
            return set(self._spot_subscribers)

    def start(self) -> MockACServer:
        self._running = True
        self._thread = threading.Thread(target=self._loop, daemon=True, name="MockACServer")
        self._thread.start()
        return self

    def stop(self) -> None:
        self._running = False
        self._sock.close()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

    def wait_for_subscriber(self, timeout: float = 2.0) -> bool:
        """Block until at least one client has subscribed."""
        with self._subscribed:
            return self._subscribed.wait_for(lambda: bool(self._subscribers), timeout=timeout)

    def wait_for_requests(self, count: int, timeout: float = 2.0) -> bool:
        """Block until *count* command packets have been received in total."""
        with self._subscribed:
            return self._subscribed.wait_for(lambda: len(self.requests) >= count, timeout=timeout)

    def broadcast(self, payload: TelemetryRecord | bytes) -> int:
        """Send *payload* to every subscriber. Returns the number of recipients."""
        data = payload if isinstance(payload, bytes) else encode(payload)
        targets = self.subscribers
        for addr in targets:
            self._sock.sendto(data, addr)
        return len(targets)

    def __enter__(self) -> MockACServer:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _loop(self) -> None:
        while self._running:
            try:
                data, addr = self._sock.recvfrom(64)
            except TimeoutError:
                continue
            except OSError:
                break
            try:
                request = decode(HandshakeRequest, data)
            except MalformedPacketError as exc:
                _logger.debug("Ignoring datagram from %s:%d: %s", addr[0], addr[1], exc)
                continue
            self._handle(request, addr)

    def _handle(self, request: HandshakeRequest, addr: tuple[str, int]) -> None:
        with self._subscribed:
            self.requests.append(request)
            if request.operation_id == SUBSCRIBE_UPDATE:
                self._subscribers.add(addr)
            elif request.operation_id == SUBSCRIBE_SPOT:
                self._spot_subscribers.add(addr)
            elif request.operation_id == DISMISS:
                self._subscribers.discard(addr)
                self._spot_subscribers.discard(addr)
            self._subscribed.notify_all()

        if request.operation_id == HANDSHAKE:
            reply = self._response if isinstance(self._response, bytes) else encode(self._response)
            try:
                self._sock.sendto(reply, addr)
            except OSError as exc:
                _logger.warning("Failed to send handshake reply: %s", exc)
        _logger.info("op=%d from %s:%d", request.operation_id, addr[0], addr[1])
