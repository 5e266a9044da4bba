"""Shared fakes for telemetry tests."""

from __future__ import annotations

import queue
import threading
import time
from collections.abc import Callable

import pytest

from airdrivr.telemetry.codec import decode, encode
from airdrivr.telemetry.mock_server import DEFAULT_RESPONSE, MockACServer
from airdrivr.telemetry.models import HandshakeRequest
from airdrivr.telemetry.transport import NetworkError, TransportTimeout

HANDSHAKE_REPLY = encode(DEFAULT_RESPONSE)


class FakeTransport:
    """In-memory transport: tests push datagrams, the code under test receives them."""

    def __init__(self, host: str = "127.0.0.1", port: int = 9996, replies=()) -> None:
        self.host = host
        self.port = port
        self.sent: list[bytes] = []
        self.opened = False
        self.closed = False
        self.send_error: NetworkError | None = None
        self.receive_gate: threading.Event | None = None
        self._inbox: queue.Queue = queue.Queue()
        for reply in replies:
            self._inbox.put(reply)

    def open(self) -> FakeTransport:
        self.opened = True
        return self

    def send(self, data: bytes) -> None:
        if self.closed:
            raise NetworkError("closed")
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(data)

    def receive(self, timeout: float | None = None) -> bytes:
        if self.receive_gate is not None:
            self.receive_gate.wait(timeout=5.0)
        if self.closed:
            raise NetworkError("closed")
        try:
            item = self._inbox.get(timeout=5.0 if timeout is None else timeout)
        except queue.Empty:
            raise TransportTimeout("timed out") from None
        if item is None:
            raise NetworkError("closed")
        if isinstance(item, Exception):
            raise item
        return item

    def push(self, item) -> None:
        """Queue a datagram (``bytes``) or an exception to raise from receive."""
        self._inbox.put(item)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbox.put(None)

    def operations(self) -> list[int]:
        return [decode(HandshakeRequest, d).operation_id for d in self.sent]


class FakeTransportFactory:
    """Creates a :class:`FakeTransport` per connect() and remembers them all."""

    def __init__(self, replies=(HANDSHAKE_REPLY,)) -> None:
        self.replies = list(replies)
        self.created: list[FakeTransport] = []
        self.configure: Callable[[FakeTransport], None] | None = None

    def __call__(self, host: str, port: int) -> FakeTransport:
        transport = FakeTransport(host, port, replies=self.replies)
        if self.configure is not None:
            self.configure(transport)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]

    @property
    def opens(self) -> int:
        return sum(t.opened for t in self.created)

    @property
    def closes(self) -> int:
        return sum(t.closed for t in self.created)


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll *predicate* until it is true or *timeout* elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def transport_factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def mock_server():
    """A :class:`MockACServer` on an OS-assigned loopback port."""
    server = MockACServer("127.0.0.1", 0).start()
    yield server
    server.stop()
