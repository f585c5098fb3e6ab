"""Sync window tracking for poll-driven reconciliation.

Windows are stateless: every poll cycle looks back a fixed duration from "now".
Consecutive windows overlap as long as the lookback exceeds the time between
two cycles, so a skipped or late cycle is absorbed by the next one. Records
seen twice are deduplicated by the reconcilers, not by the window.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _ensure_aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        raise ValueError("Time window values must include timezone information")
    return value.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class SyncWindow:
    """Concrete ``[since, until]`` range queried in one poll cycle."""

    since: datetime
    until: datetime

    def __post_init__(self) -> None:
        if self.since.tzinfo is None or self.until.tzinfo is None:
            raise ValueError("Time window values must include timezone information")
        if self.since > self.until:
            raise ValueError("Time window start must be before end")

    @property
    def width(self) -> timedelta:
        return self.until - self.since

    def contains(self, moment: datetime) -> bool:
        return self.since <= moment <= self.until

    def overlaps(self, other: SyncWindow) -> bool:
        return self.since <= other.until and other.since <= self.until


@dataclass(frozen=True)
class TimeWindow:
    """Describe the desired temporal bounds for a sync run."""

    start: datetime | None = None
    end: datetime | None = None
    lookback: timedelta | None = None

    def resolve(self, *, clock: Clock = _utcnow) -> tuple[datetime | None, datetime | None]:
        """Resolve the window into concrete UTC timestamps."""

        resolved_end = _ensure_aware(self.end)
        resolved_start = _ensure_aware(self.start)

        if self.lookback is not None:
            if self.lookback < timedelta(0):
                raise ValueError("Lookback duration must be non-negative")
            anchor = resolved_end or clock()
            if anchor.tzinfo is None:
                anchor = anchor.replace(tzinfo=UTC)
            anchor = anchor.astimezone(UTC)
            start_from_lookback = anchor - self.lookback
            if resolved_start is None:
                resolved_start = start_from_lookback
            else:
                resolved_start = max(resolved_start, start_from_lookback)
            if resolved_end is None:
                resolved_end = anchor

        if resolved_start and resolved_end and resolved_start > resolved_end:
            raise ValueError("Time window start must be before end")

        return resolved_start, resolved_end

    def to_sync_window(self, *, clock: Clock = _utcnow) -> SyncWindow:
        start, end = self.resolve(clock=clock)
        if start is None:
            raise ValueError("A sync window needs a start or a lookback")
        return SyncWindow(since=start, until=end or clock().astimezone(UTC))


def compute_sync_window(lookback: timedelta, *, clock: Clock = _utcnow) -> SyncWindow:
    """Return ``[now - lookback, now]``."""

    return TimeWindow(lookback=lookback).to_sync_window(clock=clock)


def max_tolerated_gap(lookback: timedelta, poll_interval: timedelta) -> timedelta:
    """Largest scheduler delay a lookback absorbs on top of the regular interval.

    A change stamped just after one window's ``since`` is still inside the next
    window if that next cycle starts within ``lookback`` of the previous one.
    """

    return lookback - poll_interval


__all__ = [
    "Clock",
    "SyncWindow",
    "TimeWindow",
    "compute_sync_window",
    "max_tolerated_gap",
]
