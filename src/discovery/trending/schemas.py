"""Pydantic schemas for trending endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from discovery.domain import TrendingEntry


class TrendingCourseResponse(BaseModel):
    course_id: str
    velocity: float
    signups_24h: int
    signups_previous_24h: int
    rank: int
    meta_category: str | None = None
    calculated_at: datetime

    @classmethod
    def from_entry(cls, entry: TrendingEntry) -> TrendingCourseResponse:
        return cls(
            course_id=entry.item_id,
            velocity=entry.velocity,
            signups_24h=entry.signups_24h,
            signups_previous_24h=entry.signups_previous_24h,
            rank=entry.rank,
            meta_category=entry.category,
            calculated_at=entry.calculated_at,
        )


class TrendingListResponse(BaseModel):
    courses: list[TrendingCourseResponse]
    total: int
