"""End-to-end: ACListener against MockACServer over real loopback UDP."""

from __future__ import annotations

import pytest

from airdrivr.config import ListenerConfig
from airdrivr.telemetry.codec import encode
from airdrivr.telemetry.listener import ACListener
from airdrivr.telemetry.mock_server import MockACServer, blank_record
from airdrivr.telemetry.models import (
    DISMISS,
    HANDSHAKE,
    SUBSCRIBE_SPOT,
    SUBSCRIBE_UPDATE,
    HandshakeRequest,
)
from airdrivr.telemetry.transport import UDPTransport
from tests.telemetry.conftest import wait_until


def _listener_for(server: MockACServer, **config) -> ACListener:
    host, port = server.address
    return ACListener(
        ListenerConfig(host=host, port=port, handshake_timeout=2.0, receive_timeout=0.05, **config)
    )


def test_streamed_records_reach_cache(mock_server):
    listener = _listener_for(mock_server)
    assert listener.connect() is True
    try:
        assert listener.handshake.car_name == "ks_mazda_mx5_cup"
        assert mock_server.wait_for_subscriber()

        for frontal in (0.1, -0.2, 0.3):
            mock_server.broadcast(blank_record(acc_g_frontal=frontal))
        assert wait_until(lambda: listener.cache.published_count == 3)

        assert listener.read_latest().longitudinal_g == pytest.approx(-0.3)
    finally:
        listener.disconnect()


def test_disconnect_dismisses_subscription(mock_server):
    listener = _listener_for(mock_server)
    listener.connect()
    assert mock_server.wait_for_subscriber()
    listener.disconnect()

    assert mock_server.wait_for_requests(3)
    assert [r.operation_id for r in mock_server.requests] == [HANDSHAKE, SUBSCRIBE_UPDATE, DISMISS]
    assert mock_server.subscribers == set()


def test_truncated_datagram_between_valid_ones(mock_server):
    listener = _listener_for(mock_server)
    listener.connect()
    try:
        assert mock_server.wait_for_subscriber()
        mock_server.broadcast(blank_record(lap_time=1))
        mock_server.broadcast(b"\x00" * 40)
        mock_server.broadcast(blank_record(lap_time=2))
        assert wait_until(lambda: (listener.read_latest() or blank_record()).lap_time == 2)
        assert listener.is_connected
    finally:
        listener.disconnect()


def test_csv_log_written_per_datagram(mock_server, tmp_path):
    listener = _listener_for(mock_server, log_enabled=True, log_dir=tmp_path)
    listener.connect()
    assert mock_server.wait_for_subscriber()
    mock_server.broadcast(blank_record(lap_time=100, acc_g_horizontal=0.5, acc_g_frontal=0.5))
    mock_server.broadcast(blank_record(lap_time=200, acc_g_horizontal=-0.5, acc_g_frontal=-1.0))
    assert wait_until(lambda: listener.cache.published_count == 2)
    listener.disconnect()

    (log_file,) = tmp_path.glob("*.csv")
    assert log_file.read_text(encoding="utf-8").splitlines() == [
        "lapTime,horizontal,longitudinal",
        "100,0.5,-0.5",
        "200,-0.5,1.0",
    ]


def test_connect_fails_when_nobody_answers():
    server = MockACServer("127.0.0.1", 0)  # bound but never started
    try:
        host, port = server.address
        listener = ACListener(ListenerConfig(host=host, port=port, handshake_timeout=0.1))
        assert listener.connect() is False
        assert listener.is_connected is False
    finally:
        server.stop()


def test_spot_subscription_does_not_receive_updates(mock_server):
    host, port = mock_server.address
    with UDPTransport(host, port) as client:
        client.send(encode(HandshakeRequest.for_operation(SUBSCRIBE_SPOT)))
        assert mock_server.wait_for_requests(1)
        assert len(mock_server.spot_subscribers) == 1
        assert mock_server.broadcast(blank_record()) == 0

        client.send(encode(HandshakeRequest.for_operation(DISMISS)))
        assert mock_server.wait_for_requests(2)
        assert mock_server.spot_subscribers == set()
