"""Tests for TelemetryCache — latest-record holder shared across threads."""

from __future__ import annotations

import threading

from airdrivr.telemetry.cache import TelemetryCache
from airdrivr.telemetry.codec import decode, encode
from airdrivr.telemetry.mock_server import blank_record
from airdrivr.telemetry.models import TelemetryRecord


def test_read_is_none_before_first_publish():
    assert TelemetryCache().read() is None


def test_read_returns_latest_published():
    cache = TelemetryCache()
    first, second = blank_record(lap_time=1), blank_record(lap_time=2)
    cache.publish(first)
    cache.publish(second)
    assert cache.read() is second
    assert cache.published_count == 2


def test_clear_resets_to_not_available():
    cache = TelemetryCache()
    cache.publish(blank_record())
    cache.clear()
    assert cache.read() is None
    assert cache.published_count == 0


def test_concurrent_reads_never_see_torn_or_stale_records():
    """Every observed record is one whole decoded datagram, in publish order."""
    n = 2000
    datagrams = [
        encode(
            blank_record(
                lap_time=i,
                lap_count=i,
                gear=i % 7,
                acc_g_horizontal=float(i),
                acc_g_frontal=float(-i),
                car_coordinates=(float(i), float(i), float(i)),
            )
        )
        for i in range(n)
    ]
    cache = TelemetryCache()
    done = threading.Event()
    problems: list[str] = []

    def _reader():
        last_seen = -1
        while not done.is_set():
            record = cache.read()
            if record is None:
                continue
            i = record.lap_time
            if encode(record) != datagrams[i]:
                problems.append(f"record {i} does not match its datagram")
            if i < last_seen:
                problems.append(f"saw {i} after {last_seen}")
            last_seen = i

    readers = [threading.Thread(target=_reader) for _ in range(4)]
    for t in readers:
        t.start()
    for data in datagrams:
        cache.publish(decode(TelemetryRecord, data))
    done.set()
    for t in readers:
        t.join(timeout=5.0)

    assert problems == []
    assert cache.read().lap_time == n - 1
