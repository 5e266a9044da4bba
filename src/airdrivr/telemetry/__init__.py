"""Live telemetry from Assetto Corsa over its UDP remote-telemetry protocol.

Public API
----------
ACListener              - handshake / subscribe / dismiss state machine
ConnectionState         - DISCONNECTED, CONNECTING, CONNECTED, DISCONNECTING
TelemetryRecord         - one decoded car-state snapshot
HandshakeRequest        - client command packet
HandshakeResponse       - server identification
TelemetryCache          - thread-safe latest-record holder
ReceiveLoop             - background receive → decode → publish thread
UDPTransport            - datagram socket to one remote endpoint
CsvTelemetrySink        - g-force CSV log
encode / decode         - fixed-layout wire codec
NetworkError, TransportTimeout, MalformedPacketError,
AlreadyConnectingError, SinkUnavailableError
"""

from airdrivr.telemetry.cache import TelemetryCache
from airdrivr.telemetry.codec import MalformedPacketError, decode, encode, record_size
from airdrivr.telemetry.listener import ACListener, AlreadyConnectingError
from airdrivr.telemetry.models import (
    ConnectionState,
    HandshakeRequest,
    HandshakeResponse,
    TelemetryRecord,
)
from airdrivr.telemetry.receiver import ReceiveLoop
from airdrivr.telemetry.sink import CsvTelemetrySink, NullSink, SinkUnavailableError, TelemetrySink
from airdrivr.telemetry.transport import NetworkError, TransportTimeout, UDPTransport

__all__ = [
    "ACListener",
    "AlreadyConnectingError",
    "ConnectionState",
    "CsvTelemetrySink",
    "HandshakeRequest",
    "HandshakeResponse",
    "MalformedPacketError",
    "NetworkError",
    "NullSink",
    "ReceiveLoop",
    "SinkUnavailableError",
    "TelemetryCache",
    "TelemetryRecord",
    "TelemetrySink",
    "TransportTimeout",
    "UDPTransport",
    "decode",
    "encode",
    "record_size",
]
