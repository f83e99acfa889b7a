"""Pydantic schemas for recommendation endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from discovery.domain import Recommendation
from discovery.recommendations.service import GenerationReport


class RecommendationResponse(BaseModel):
    id: str | None = None
    course_id: str
    strategy: str
    match_score: int
    reason: str
    metadata: dict[str, Any] = {}
    created_at: datetime
    expires_at: datetime | None = None

    @classmethod
    def from_domain(cls, rec: Recommendation) -> RecommendationResponse:
        return cls(
            id=rec.id,
            course_id=rec.item_id,
            strategy=rec.strategy,
            match_score=rec.match_score,
            reason=rec.reason,
            metadata=rec.metadata,
            created_at=rec.created_at,
            expires_at=rec.expires_at,
        )


class RecommendationSection(BaseModel):
    strategy: str
    title: str
    recommendations: list[RecommendationResponse]


class RecommendationsResponse(BaseModel):
    sections: list[RecommendationSection]
    total: int


class StrategyOutcomeResponse(BaseModel):
    strategy: str
    ok: bool
    written: int
    error: str | None = None


class GenerationReportResponse(BaseModel):
    user_id: str
    ok: bool
    written: int
    outcomes: list[StrategyOutcomeResponse]

    @classmethod
    def from_report(cls, report: GenerationReport) -> GenerationReportResponse:
        return cls(
            user_id=report.user_id,
            ok=report.ok,
            written=report.written,
            outcomes=[
                StrategyOutcomeResponse(strategy=o.strategy, ok=o.ok, written=o.written, error=o.error)
                for o in report.outcomes
            ],
        )
