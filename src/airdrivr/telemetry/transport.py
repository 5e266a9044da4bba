"""UDPTransport — datagram socket bound to a single remote endpoint."""

from __future__ import annotations

import contextlib
import socket

_MAX_DATAGRAM = 2048  # largest AC packet is the 408-byte handshake response


class NetworkError(Exception):
    """Raised when the socket cannot be opened, written or read."""


class TransportTimeout(NetworkError):
    """Raised when :meth:`UDPTransport.receive` times out."""


class UDPTransport:
    """Sends datagrams to, and receives datagrams from, one remote endpoint.

    The socket is not bound to a particular local port; the OS assigns one on
    the first send. No retry or reconnection logic lives here, every failure
    is raised to the caller as :class:`NetworkError`.

    Parameters
    ----------
    host:
        Remote IPv4 address, e.g. ``"127.0.0.1"``.
    port:
        Remote UDP port (Assetto Corsa listens on 9996).
    """

    def __init__(self, host: str, port: int) -> None:
        self._endpoint = (host, port)
        self._sock: socket.socket | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def endpoint(self) -> tuple[str, int]:
        return self._endpoint

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    def open(self) -> UDPTransport:
        """Create the socket. Returns ``self`` for chaining."""
        if self._sock is not None:
            return self
        try:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as exc:
            raise NetworkError(f"Could not open UDP socket: {exc}") from exc
        return self

    def send(self, data: bytes) -> None:
        """Send *data* as one datagram to the remote endpoint."""
        sock = self._require_socket()
        try:
            sock.sendto(data, self._endpoint)
        except OSError as exc:
            raise NetworkError(f"Send to {self._format_endpoint()} failed: {exc}") from exc

    def receive(self, timeout: float | None = None) -> bytes:
        """Block until a datagram arrives and return its payload.

        Parameters
        ----------
        timeout:
            Seconds to wait; ``None`` blocks until a datagram arrives or the
            socket is closed.

        Raises
        ------
        TransportTimeout
            If *timeout* elapses first.
        NetworkError
            If the socket is closed (also from another thread) or errors.
        """
        sock = self._require_socket()
        try:
            sock.settimeout(timeout)
            data, _addr = sock.recvfrom(_MAX_DATAGRAM)
        except TimeoutError as exc:
            raise TransportTimeout(
                f"No datagram from {self._format_endpoint()} within {timeout}s"
            ) from exc
        except OSError as exc:
            raise NetworkError(f"Receive from {self._format_endpoint()} failed: {exc}") from exc
        if self._sock is None:
            raise NetworkError("Transport closed while receiving")
        return data

    def close(self) -> None:
        """Close the socket, unblocking any thread waiting in :meth:`receive`."""
        sock, self._sock = self._sock, None
        if sock is None:
            return
        # Unconnected UDP reports ENOTCONN here but still wakes blocked readers.
        with contextlib.suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
        sock.close()

    def __enter__(self) -> UDPTransport:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise NetworkError("Transport is not open")
        return self._sock

    def _format_endpoint(self) -> str:
        return f"{self._endpoint[0]}:{self._endpoint[1]}"
