"""Signup velocity and snapshot ranking."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from discovery.domain import Enrollment, TrendingEntry

WINDOW = timedelta(hours=24)
COLD_START_VELOCITY = 10.0


def compute_velocity(current: int, previous: int, cold_start: float = COLD_START_VELOCITY) -> float:
    """Ratio of this window's signups to the previous window's.

    With no previous signups a course that has current signups gets
    ``cold_start``; a course with neither gets 0.0.
    """
    if previous > 0:
        return current / previous
    if current > 0:
        return cold_start
    return 0.0


@dataclass
class _Counts:
    current: int = 0
    previous: int = 0
    category: str | None = None


def count_signups(enrollments: Iterable[Enrollment], now: datetime) -> dict[str, _Counts]:
    """Bucket starts into (now-24h, now] and (now-48h, now-24h]."""
    boundary = now - WINDOW
    start = boundary - WINDOW
    counts: dict[str, _Counts] = {}
    for e in enrollments:
        if e.started_at > now or e.started_at <= start:
            continue
        bucket = counts.setdefault(e.item_id, _Counts())
        if e.started_at > boundary:
            bucket.current += 1
        else:
            bucket.previous += 1
        if bucket.category is None:
            bucket.category = e.category
    return counts


def build_snapshot(
    enrollments: Iterable[Enrollment],
    now: datetime,
    limit: int = 100,
    cold_start: float = COLD_START_VELOCITY,
) -> list[TrendingEntry]:
    """Rank courses by velocity descending, then signups_24h descending, then id.

    Courses without signups in the current window are left out.
    """
    rows = [
        (item_id, compute_velocity(c.current, c.previous, cold_start), c)
        for item_id, c in count_signups(enrollments, now).items()
        if c.current > 0
    ]
    rows.sort(key=lambda r: (-r[1], -r[2].current, r[0]))
    return [
        TrendingEntry(
            item_id=item_id,
            velocity=velocity,
            signups_24h=c.current,
            signups_previous_24h=c.previous,
            rank=rank,
            category=c.category,
            calculated_at=now,
        )
        for rank, (item_id, velocity, c) in enumerate(rows[:limit], start=1)
    ]
