"""Telemetry data models for the Assetto Corsa UDP protocol."""

from __future__ import annotations

import enum
from dataclasses import dataclass

Wheels = tuple[float, float, float, float]

# ---------------------------------------------------------------------------
# Protocol constants
# ---------------------------------------------------------------------------

HANDSHAKE = 0
SUBSCRIBE_UPDATE = 1
SUBSCRIBE_SPOT = 2
DISMISS = 3

CLIENT_IDENTIFIER = 0
PROTOCOL_VERSION = 1


class ConnectionState(enum.Enum):
    """Lifecycle of an :class:`~airdrivr.telemetry.listener.ACListener` session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


@dataclass(frozen=True)
class HandshakeRequest:
    """Client → server command packet (12 bytes on the wire)."""

    identifier: int = CLIENT_IDENTIFIER
    version: int = PROTOCOL_VERSION
    operation_id: int = HANDSHAKE

    @classmethod
    def for_operation(cls, operation_id: int) -> HandshakeRequest:
        """Return a request with this client's identifier/version for *operation_id*."""
        return cls(operation_id=operation_id)


@dataclass(frozen=True)
class HandshakeResponse:
    """Server identification returned in reply to a handshake."""

    car_name: str
    driver_name: str
    identifier: int
    version: int
    track_name: str
    track_config: str

    def __str__(self) -> str:
        track = self.track_name
        if self.track_config:
            track = f"{track} ({self.track_config})"
        return (
            f"{self.driver_name} in {self.car_name} at {track} "
            f"[id={self.identifier}, v{self.version}]"
        )


@dataclass(frozen=True)
class TelemetryRecord:
    """One live car-state snapshot (``RTCarInfo``).

    Instances are immutable so a reference can be handed between threads
    without copying. Per-wheel arrays are ordered FL, FR, RL, RR.
    """

    identifier: str
    size: int

    speed_kmh: float
    speed_mph: float
    speed_ms: float

    is_abs_enabled: bool
    is_abs_in_action: bool
    is_tc_in_action: bool
    is_tc_enabled: bool
    is_in_pit: bool
    is_engine_limiter_on: bool

    acc_g_vertical: float
    acc_g_horizontal: float
    """Lateral g-force."""

    acc_g_frontal: float
    """Longitudinal g-force as transmitted. Positive = braking."""

    lap_time: int
    """Current lap elapsed time in milliseconds."""

    last_lap: int
    best_lap: int
    lap_count: int

    gas: float
    brake: float
    clutch: float
    engine_rpm: float
    steer: float
    gear: int
    cg_height: float

    wheel_angular_speed: Wheels
    slip_angle: Wheels
    slip_angle_contact_patch: Wheels
    slip_ratio: Wheels
    tyre_slip: Wheels
    nd_slip: Wheels
    load: Wheels
    dy: Wheels
    mz: Wheels
    tyre_dirty_level: Wheels
    camber_rad: Wheels
    tyre_radius: Wheels
    tyre_loaded_radius: Wheels
    suspension_height: Wheels

    car_position_normalized: float
    car_slope: float
    car_coordinates: tuple[float, float, float]

    @property
    def lap_time_seconds(self) -> float:
        return self.lap_time / 1000.0

    @property
    def lateral_g(self) -> float:
        return self.acc_g_horizontal

    @property
    def longitudinal_g(self) -> float:
        """Longitudinal g-force with forward acceleration positive."""
        return -self.acc_g_frontal

    def g_force(self) -> tuple[float, float]:
        """Return ``(lateral, longitudinal)`` g, forward acceleration positive."""
        return self.lateral_g, self.longitudinal_g
