"""Recommendation generation and read-side grouping."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog

from discovery.domain import (
    ALL_STRATEGIES,
    STRATEGIES,
    STRATEGY_COLLABORATIVE,
    STRATEGY_SKILL_ADJACENCY,
    STRATEGY_SOCIAL_SIGNAL,
    STRATEGY_TRENDING,
    Recommendation,
)
from discovery.errors import ValidationError
from discovery.recommendations.strategies import Strategy
from discovery.stores.base import RecommendationStore

logger = structlog.get_logger()

SECTIONS = {
    STRATEGY_COLLABORATIVE: "Because You Completed",
    STRATEGY_SKILL_ADJACENCY: "Next Level Skills",
    STRATEGY_SOCIAL_SIGNAL: "Friends Are Learning",
    STRATEGY_TRENDING: "Trending Now",
}


@dataclass
class StrategyOutcome:
    strategy: str
    ok: bool = True
    written: int = 0
    error: str | None = None


@dataclass
class GenerationReport:
    user_id: str
    outcomes: list[StrategyOutcome] = field(default_factory=list)

    @property
    def written(self) -> int:
        return sum(o.written for o in self.outcomes)

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    def outcome(self, strategy: str) -> StrategyOutcome | None:
        return next((o for o in self.outcomes if o.strategy == strategy), None)


class RecommendationService:
    def __init__(self, store: RecommendationStore, strategies: Sequence[Strategy]) -> None:
        self.store = store
        self.strategies = tuple(strategies)

    async def list_live(self, user_id: str, strategy: str = ALL_STRATEGIES) -> list[Recommendation]:
        if strategy == ALL_STRATEGIES:
            return await self.store.list_live(user_id)
        if strategy not in STRATEGIES:
            raise ValidationError(f"Unknown strategy: {strategy}")
        return await self.store.list_live(user_id, strategy)

    async def grouped(self, user_id: str) -> dict[str, list[Recommendation]]:
        """Live rows grouped by strategy. Strategies without rows are left out."""
        groups: dict[str, list[Recommendation]] = {}
        for rec in await self.store.list_live(user_id):
            groups.setdefault(rec.strategy, []).append(rec)
        return groups

    async def generate(self, user_id: str) -> GenerationReport:
        """Run every strategy concurrently and upsert what each one produces.

        Never raises because of a strategy: failures are logged and reported
        per strategy, and rows written before a failure are kept.
        """
        if not user_id:
            raise ValidationError("user_id is required")

        now = datetime.now(timezone.utc)
        outcomes = await asyncio.gather(*(self._run(s, user_id, now) for s in self.strategies))
        report = GenerationReport(user_id=user_id, outcomes=list(outcomes))
        logger.info(
            "recommendations_generated",
            user_id=user_id,
            written=report.written,
            failed=[o.strategy for o in report.outcomes if not o.ok],
        )
        return report

    async def _run(self, strategy: Strategy, user_id: str, now: datetime) -> StrategyOutcome:
        outcome = StrategyOutcome(strategy=strategy.name)
        try:
            for rec in await strategy.generate(user_id, now):
                await self.store.upsert(rec)
                outcome.written += 1
        except Exception as exc:
            outcome.ok = False
            outcome.error = f"{type(exc).__name__}: {exc}"
            logger.warning(
                "recommendation_strategy_failed",
                user_id=user_id,
                strategy=strategy.name,
                written=outcome.written,
                exc_info=True,
            )
        return outcome
