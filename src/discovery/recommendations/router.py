"""Recommendation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from discovery.auth.dependencies import get_current_user_id
from discovery.dependencies import get_discovery
from discovery.domain import ALL_STRATEGIES, STRATEGIES
from discovery.engine import DiscoveryEngine
from discovery.recommendations.schemas import (
    GenerationReportResponse,
    RecommendationResponse,
    RecommendationSection,
    RecommendationsResponse,
)
from discovery.recommendations.service import SECTIONS

router = APIRouter(prefix="/api/v1", tags=["Recommendations"])


@router.get("/recommendations", response_model=RecommendationsResponse)
async def get_recommendations(
    strategy: str = Query(ALL_STRATEGIES),
    current_user_id: str = Depends(get_current_user_id),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    """Live recommendations grouped into display sections, best first."""
    if strategy == ALL_STRATEGIES:
        groups = await engine.recommendations.grouped(current_user_id)
    else:
        groups = {strategy: await engine.recommendations.list_live(current_user_id, strategy)}
    sections = [
        RecommendationSection(
            strategy=name,
            title=SECTIONS[name],
            recommendations=[RecommendationResponse.from_domain(r) for r in groups[name]],
        )
        for name in STRATEGIES
        if groups.get(name)
    ]
    return RecommendationsResponse(sections=sections, total=sum(len(s.recommendations) for s in sections))


@router.post("/recommendations/refresh", response_model=GenerationReportResponse, status_code=201)
async def refresh_recommendations(
    current_user_id: str = Depends(get_current_user_id),
    engine: DiscoveryEngine = Depends(get_discovery),
):
    """Regenerate the caller's recommendations and report per-strategy outcomes."""
    report = await engine.recommendations.generate(current_user_id)
    return GenerationReportResponse.from_report(report)
