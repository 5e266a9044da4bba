"""Wire codec — fixed-layout Assetto Corsa UDP records to/from bytes.

Every record is a direct field-by-field projection with no framing, length
prefix or checksum. Byte order is fixed to little-endian (the simulator only
ships for x86 Windows) instead of relying on the host's native layout.
The codec does not validate field values; that is the caller's job.
"""

from __future__ import annotations

import struct
from collections.abc import Callable
from typing import Any, TypeVar

from airdrivr.telemetry.models import HandshakeRequest, HandshakeResponse, TelemetryRecord

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Layouts
# ---------------------------------------------------------------------------

_REQUEST_STRUCT = struct.Struct("<iii")

# carName, driverName: wchar_t[50]; identifier, version: int32; trackName,
# trackConfig: wchar_t[50]
_NAME_BYTES = 100
_RESPONSE_STRUCT = struct.Struct(f"<{_NAME_BYTES}s{_NAME_BYTES}sii{_NAME_BYTES}s{_NAME_BYTES}s")

# RTCarInfo: char identifier (+3 pad), int size, 3 speeds, 6 bools (+2 pad),
# 3 accG, 4 lap ints, gas/brake/clutch/rpm/steer, gear, cgHeight,
# 14 per-wheel float[4] arrays, position/slope, coordinates float[3]
_TELEMETRY_STRUCT = struct.Struct("<c3xi3f6?2x3f4i5fif56f2f3f")

_WHEEL_FIELDS = (
    "wheel_angular_speed",
    "slip_angle",
    "slip_angle_contact_patch",
    "slip_ratio",
    "tyre_slip",
    "nd_slip",
    "load",
    "dy",
    "mz",
    "tyre_dirty_level",
    "camber_rad",
    "tyre_radius",
    "tyre_loaded_radius",
    "suspension_height",
)

_HEAD_FIELDS = (
    "identifier",
    "size",
    "speed_kmh",
    "speed_mph",
    "speed_ms",
    "is_abs_enabled",
    "is_abs_in_action",
    "is_tc_in_action",
    "is_tc_enabled",
    "is_in_pit",
    "is_engine_limiter_on",
    "acc_g_vertical",
    "acc_g_horizontal",
    "acc_g_frontal",
    "lap_time",
    "last_lap",
    "best_lap",
    "lap_count",
    "gas",
    "brake",
    "clutch",
    "engine_rpm",
    "steer",
    "gear",
    "cg_height",
)


class MalformedPacketError(ValueError):
    """Raised when a datagram is shorter than the record it should contain."""


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _decode_name(raw: bytes) -> str:
    """Decode a UTF-16LE name; the simulator terminates with NUL or ``%``."""
    text = raw.decode("utf-16-le", errors="replace")
    return text.split("\x00", 1)[0].split("%", 1)[0]


def _encode_name(text: str) -> bytes:
    return text.encode("utf-16-le")[:_NAME_BYTES]


def _request_fields(req: HandshakeRequest) -> tuple:
    return req.identifier, req.version, req.operation_id


def _request_from(values: tuple) -> HandshakeRequest:
    identifier, version, operation_id = values
    return HandshakeRequest(identifier=identifier, version=version, operation_id=operation_id)


def _response_fields(resp: HandshakeResponse) -> tuple:
    return (
        _encode_name(resp.car_name),
        _encode_name(resp.driver_name),
        resp.identifier,
        resp.version,
        _encode_name(resp.track_name),
        _encode_name(resp.track_config),
    )


def _response_from(values: tuple) -> HandshakeResponse:
    car, driver, identifier, version, track, config = values
    return HandshakeResponse(
        car_name=_decode_name(car),
        driver_name=_decode_name(driver),
        identifier=identifier,
        version=version,
        track_name=_decode_name(track),
        track_config=_decode_name(config),
    )


def _telemetry_fields(rec: TelemetryRecord) -> tuple:
    head = [getattr(rec, name) for name in _HEAD_FIELDS]
    head[0] = rec.identifier.encode("latin-1")[:1] or b"\x00"
    values: list[Any] = head
    for name in _WHEEL_FIELDS:
        values.extend(getattr(rec, name))
    values.append(rec.car_position_normalized)
    values.append(rec.car_slope)
    values.extend(rec.car_coordinates)
    return tuple(values)


def _telemetry_from(values: tuple) -> TelemetryRecord:
    n_head = len(_HEAD_FIELDS)
    fields: dict[str, Any] = dict(zip(_HEAD_FIELDS, values[:n_head]))
    fields["identifier"] = fields["identifier"].decode("latin-1")

    offset = n_head
    for name in _WHEEL_FIELDS:
        fields[name] = tuple(values[offset : offset + 4])
        offset += 4

    fields["car_position_normalized"] = values[offset]
    fields["car_slope"] = values[offset + 1]
    fields["car_coordinates"] = tuple(values[offset + 2 : offset + 5])
    return TelemetryRecord(**fields)


_Layout = tuple[struct.Struct, Callable[[Any], tuple], Callable[[tuple], Any]]

_LAYOUTS: dict[type, _Layout] = {
    HandshakeRequest: (_REQUEST_STRUCT, _request_fields, _request_from),
    HandshakeResponse: (_RESPONSE_STRUCT, _response_fields, _response_from),
    TelemetryRecord: (_TELEMETRY_STRUCT, _telemetry_fields, _telemetry_from),
}


def _layout(record_type: type) -> _Layout:
    try:
        return _LAYOUTS[record_type]
    except KeyError:
        raise TypeError(f"No wire layout for {record_type.__name__}") from None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def record_size(record_type: type) -> int:
    """Return the fixed wire size of *record_type* in bytes."""
    return _layout(record_type)[0].size


def encode(record: Any) -> bytes:
    """Serialize *record* to its fixed-size wire representation."""
    layout, to_fields, _ = _layout(type(record))
    return layout.pack(*to_fields(record))


def decode(record_type: type[T], data: bytes) -> T:
    """Deserialize the leading bytes of *data* as *record_type*.

    Trailing bytes beyond the fixed size are ignored.

    Raises
    ------
    MalformedPacketError
        If *data* is shorter than the record's fixed size.
    """
    layout, _, from_fields = _layout(record_type)
    if len(data) < layout.size:
        raise MalformedPacketError(
            f"{record_type.__name__} needs {layout.size} bytes, got {len(data)}"
        )
    return from_fields(layout.unpack_from(data))
