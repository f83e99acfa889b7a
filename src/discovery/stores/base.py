"""Abstract store interfaces for the five engine-owned collections."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from discovery.domain import (
    ActivityEvent,
    Recommendation,
    RelationshipEdge,
    TrendingEntry,
    UnlockedAchievement,
)
from discovery.errors import TransientStoreError

T = TypeVar("T")

# Exceptions that mean "the store was unreachable or too slow", as opposed to
# programming errors. Adapters extend this with their driver's error types.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (TimeoutError, ConnectionError, OSError)


async def guarded(
    operation: str,
    awaitable: Awaitable[T],
    timeout: float,
    transient: tuple[type[BaseException], ...] = TRANSIENT_ERRORS,
) -> T:
    """Await a store call with a deadline, surfacing failures as TransientStoreError."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except transient as exc:
        raise TransientStoreError(operation, exc) from exc


class RelationshipStore(ABC):
    """Directed follow edges."""

    @abstractmethod
    async def add(self, follower_id: str, following_id: str) -> bool:
        """Create the edge. Returns False if it already existed."""

    @abstractmethod
    async def remove(self, follower_id: str, following_id: str) -> bool:
        """Delete the edge. Returns False if it did not exist."""

    @abstractmethod
    async def followers(self, user_id: str) -> list[str]:
        """Users following ``user_id``, newest edge first."""

    @abstractmethod
    async def following(self, user_id: str) -> list[str]:
        """Users ``user_id`` follows, newest edge first."""

    @abstractmethod
    async def get(self, follower_id: str, following_id: str) -> RelationshipEdge | None:
        """Fetch a single edge."""


class ActivityStore(ABC):
    """Append-only activity ledger."""

    @abstractmethod
    async def append(self, event: ActivityEvent) -> ActivityEvent:
        """Persist ``event`` and return it with its assigned id."""

    @abstractmethod
    async def feed(self, user_id: str, visibilities: Sequence[str], limit: int) -> list[ActivityEvent]:
        """Events by accounts ``user_id`` follows, filtered by visibility, newest first."""

    @abstractmethod
    async def by_actor(self, user_id: str, limit: int) -> list[ActivityEvent]:
        """Events authored by ``user_id`` regardless of visibility, newest first."""


class RecommendationStore(ABC):
    """Scored, expiring suggestions keyed by (user, item, strategy)."""

    @abstractmethod
    async def upsert(self, recommendation: Recommendation) -> str:
        """Insert or overwrite the (user, item, strategy) row; return its id."""

    @abstractmethod
    async def list_live(self, user_id: str, strategy: str | None = None) -> list[Recommendation]:
        """Non-expired rows, optionally filtered by strategy, by score descending."""


class TrendingStore(ABC):
    """Fully-replaced ranked snapshot.

    Implementations must guarantee that ``top`` never observes an empty or a
    mixed-generation snapshot while ``replace_all`` is running.
    """

    @abstractmethod
    async def replace_all(self, entries: Sequence[TrendingEntry]) -> None:
        """Atomically swap the current snapshot for ``entries``."""

    @abstractmethod
    async def top(self, limit: int) -> list[TrendingEntry]:
        """Entries ordered by rank ascending."""


class AchievementStore(ABC):
    """Write-once unlock records."""

    @abstractmethod
    async def unlocked(self, user_id: str) -> list[UnlockedAchievement]:
        """All unlocks for the user, most recent first."""

    @abstractmethod
    async def unlock(self, user_id: str, achievement_id: str) -> UnlockedAchievement | None:
        """Record the unlock. Returns None if it already existed (no-op)."""


@dataclass(frozen=True)
class Stores:
    """The store bundle handed to the engine at construction time."""

    relationships: RelationshipStore
    activities: ActivityStore
    recommendations: RecommendationStore
    trending: TrendingStore
    achievements: AchievementStore
