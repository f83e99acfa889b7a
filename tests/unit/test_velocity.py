"""Velocity computation and snapshot ranking."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from discovery.domain import Enrollment
from discovery.trending.velocity import build_snapshot, compute_velocity, count_signups

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _starts(item_id: str, hours_ago: float, n: int = 1, category: str | None = None) -> list[Enrollment]:
    return [Enrollment(item_id, NOW - timedelta(hours=hours_ago), category) for _ in range(n)]


@pytest.mark.parametrize(
    ("current", "previous", "expected"),
    [(10, 5, 2.0), (3, 6, 0.5), (4, 0, 10.0), (0, 0, 0.0), (0, 4, 0.0)],
)
def test_compute_velocity(current, previous, expected):
    assert compute_velocity(current, previous) == expected


def test_cold_start_is_configurable():
    assert compute_velocity(1, 0, cold_start=3.0) == 3.0


class TestCountSignups:
    """Window bucketing."""

    def test_boundaries(self):
        enrollments = [
            *_starts("a", 0),  # now: current
            *_starts("a", 24),  # exactly 24h ago: previous
            *_starts("a", 23.9),  # current
            *_starts("a", 48),  # exactly 48h ago: dropped
            *_starts("a", -1),  # in the future: dropped
        ]
        counts = count_signups(enrollments, NOW)

        assert counts["a"].current == 2
        assert counts["a"].previous == 1

    def test_keeps_first_category(self):
        counts = count_signups([*_starts("a", 1, category="ai"), *_starts("a", 2)], NOW)
        assert counts["a"].category == "ai"


class TestBuildSnapshot:
    """Ranking and filtering."""

    def test_ranked_by_velocity(self):
        enrollments = [
            *_starts("slow", 2, 2), *_starts("slow", 30, 4),
            *_starts("fast", 2, 6), *_starts("fast", 30, 2),
        ]
        snapshot = build_snapshot(enrollments, NOW)

        assert [(e.item_id, e.velocity, e.rank) for e in snapshot] == [("fast", 3.0, 1), ("slow", 0.5, 2)]
        assert snapshot[0].signups_24h == 6
        assert snapshot[0].signups_previous_24h == 2
        assert snapshot[0].calculated_at == NOW

    def test_no_current_signups_excluded(self):
        snapshot = build_snapshot(_starts("stale", 30, 5), NOW)
        assert snapshot == []

    def test_ties_broken_by_signups_then_id(self):
        enrollments = [
            *_starts("b", 1, 2), *_starts("b", 30, 1),  # 2.0 with 2 signups
            *_starts("a", 1, 2), *_starts("a", 30, 1),  # 2.0 with 2 signups
            *_starts("c", 1, 4), *_starts("c", 30, 2),  # 2.0 with 4 signups
        ]
        snapshot = build_snapshot(enrollments, NOW)
        assert [e.item_id for e in snapshot] == ["c", "a", "b"]

    def test_cold_start_ranked_with_configured_velocity(self):
        enrollments = [*_starts("new", 1), *_starts("old", 1, 30), *_starts("old", 30, 2)]
        snapshot = build_snapshot(enrollments, NOW)

        assert [(e.item_id, e.velocity) for e in snapshot] == [("old", 15.0), ("new", 10.0)]

    def test_capped_with_dense_ranks(self):
        enrollments = [e for i in range(8) for e in _starts(f"course_{i}", 1, i + 1)]
        snapshot = build_snapshot(enrollments, NOW, limit=5)

        assert len(snapshot) == 5
        assert [e.rank for e in snapshot] == [1, 2, 3, 4, 5]
        assert snapshot[0].item_id == "course_7"
