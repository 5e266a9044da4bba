"""Assetto Corsa live g-force monitor — connects over UDP and prints telemetry.

Usage:
  uv run python scripts/record_session.py
  uv run python scripts/record_session.py --host 192.168.1.20 --log --log-dir logs
  uv run python scripts/record_session.py --lateral-gain 1.5 --longitudinal-gain 0.8

Settings default to the AC_* variables in the environment or .env.
Press Ctrl+C to unsubscribe and quit.
"""

from __future__ import annotations

import argparse
import logging
import time

from dotenv import load_dotenv

load_dotenv()

from airdrivr.config import ListenerConfig  # noqa: E402
from airdrivr.telemetry.listener import ACListener  # noqa: E402

_TARGET_HZ = 60
_SLEEP = 1.0 / _TARGET_HZ


def main() -> None:
    ap = argparse.ArgumentParser(description="Monitor Assetto Corsa UDP telemetry")
    ap.add_argument("--host", default=None, help="Simulator IP address (AC_HOST)")
    ap.add_argument("--port", type=int, default=None, help="Simulator UDP port (AC_PORT)")
    ap.add_argument("--log", action="store_true", help="Append g-force samples to a CSV file")
    ap.add_argument("--log-dir", default=None, help="Directory for CSV logs (AC_LOG_DIR)")
    ap.add_argument("--lateral-gain", type=float, default=1.0, help="Multiplier for lateral g")
    ap.add_argument(
        "--longitudinal-gain", type=float, default=1.0, help="Multiplier for longitudinal g"
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    config = ListenerConfig.from_env(
        host=args.host,
        port=args.port,
        log_enabled=True if args.log else None,
        log_dir=args.log_dir,
    )
    listener = ACListener(config)

    print(f"Connecting to {config.host}:{config.port}...")
    if not listener.connect():
        print(f"\nx Connection failed: {listener.last_error}")
        return

    if listener.handshake is not None:
        print(f"Connected: {listener.handshake}")
    print(f"{'lap time':>10}  {'lateral g':>10}  {'long. g':>10}  {'km/h':>7}  gear")
    print("-" * 50)

    try:
        while listener.is_connected:
            record = listener.read_latest()
            if record is None:
                time.sleep(0.1)
                continue

            lateral, longitudinal = record.g_force()
            print(
                f"\r{record.lap_time_seconds:>10.2f}  "
                f"{lateral * args.lateral_gain:>10.3f}  "
                f"{longitudinal * args.longitudinal_gain:>10.3f}  "
                f"{record.speed_kmh:>7.1f}  {record.gear - 1:>4}",
                end="",
                flush=True,
            )
            time.sleep(_SLEEP)
        print(f"\n\nSession dropped: {listener.last_error}")
    except KeyboardInterrupt:
        print("\n\nStopping.")
    finally:
        listener.disconnect()


if __name__ == "__main__":
    main()
