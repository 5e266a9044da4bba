"""Local stand-in for Assetto Corsa's UDP telemetry endpoint.

Answers handshakes and streams synthetic slalom telemetry to subscribers so
the listener can be exercised without the game.

Usage:
  uv run python scripts/mock_ac_server.py
  uv run python scripts/mock_ac_server.py --port 9996 --hz 100
"""

from __future__ import annotations

import argparse
import logging
import time

from airdrivr.telemetry.mock_server import MockACServer, synthetic_record


def main() -> None:
    ap = argparse.ArgumentParser(description="Mock Assetto Corsa telemetry server")
    ap.add_argument("--host", default="127.0.0.1", help="Address to bind")
    ap.add_argument("--port", type=int, default=9996, help="UDP port to bind")
    ap.add_argument("--hz", type=float, default=60.0, help="Telemetry rate")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-7s %(message)s")

    interval = 1.0 / args.hz
    server = MockACServer(args.host, args.port)
    host, port = server.address
    print(f"Mock AC server on {host}:{port}. Press Ctrl+C to stop.", flush=True)

    t0 = time.monotonic()
    with server:
        try:
            while True:
                server.broadcast(synthetic_record(time.monotonic() - t0))
                time.sleep(interval)
        except KeyboardInterrupt:
            pass
    print("\nMock server stopped.")


if __name__ == "__main__":
    main()
