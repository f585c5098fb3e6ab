from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from storelink.config import ConfigurationError, SyncConfig
from storelink.domain.time_windows import (
    SyncWindow,
    TimeWindow,
    compute_sync_window,
    max_tolerated_gap,
)

START = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def test_compute_sync_window_looks_back_from_now() -> None:
    window = compute_sync_window(timedelta(hours=2), clock=lambda: START)

    assert window.until == START
    assert window.since == START - timedelta(hours=2)
    assert window.width == timedelta(hours=2)
    assert window.contains(START - timedelta(minutes=30))


def test_naive_window_bounds_are_rejected() -> None:
    with pytest.raises(ValueError, match="timezone"):
        SyncWindow(since=datetime(2025, 1, 1), until=START)  # noqa: DTZ001


def test_inverted_window_is_rejected() -> None:
    with pytest.raises(ValueError, match="before end"):
        TimeWindow(start=START, end=START - timedelta(minutes=1)).resolve()


def test_time_window_clamps_start_to_lookback() -> None:
    start, end = TimeWindow(
        start=START - timedelta(days=1), end=START, lookback=timedelta(hours=1)
    ).resolve()

    assert start == START - timedelta(hours=1)
    assert end == START


def test_no_change_is_missed_when_a_cycle_is_skipped() -> None:
    config = SyncConfig()
    drift = timedelta(minutes=7)
    # cycle at +30 is skipped, the one after it runs late
    cycle_times = [
        START,
        START + config.poll_interval,
        START + 3 * config.poll_interval + drift,
        START + 4 * config.poll_interval,
    ]
    windows = [compute_sync_window(config.lookback, clock=lambda at=at: at) for at in cycle_times]

    for previous, current in zip(windows, windows[1:], strict=False):
        assert current.overlaps(previous)
        assert current.since <= previous.until

    change = windows[0].since
    while change <= windows[-1].until:
        assert any(window.contains(change) for window in windows)
        change += timedelta(minutes=1)


def test_max_tolerated_gap() -> None:
    assert max_tolerated_gap(timedelta(hours=2), timedelta(minutes=15)) == timedelta(minutes=105)


def test_lookback_must_cover_interval_and_margin() -> None:
    with pytest.raises(ConfigurationError, match="Lookback"):
        SyncConfig(poll_interval=timedelta(minutes=15), lookback=timedelta(minutes=20))

    with pytest.raises(ConfigurationError, match="positive"):
        SyncConfig(poll_interval=timedelta(0))
