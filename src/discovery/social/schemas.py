"""Pydantic schemas for follow and feed endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from discovery.domain import ActivityEvent


class FollowResponse(BaseModel):
    follower_id: str
    following_id: str
    created: bool


class FollowStatusResponse(BaseModel):
    follower_id: str
    following_id: str
    following: bool


class UserListResponse(BaseModel):
    user_id: str
    users: list[str]
    total: int


class ActivityResponse(BaseModel):
    id: str | None = None
    user_id: str
    activity_type: str
    reference_type: str | None = None
    reference_id: str | None = None
    metadata: dict[str, Any] = {}
    visibility: str
    created_at: datetime

    @classmethod
    def from_event(cls, event: ActivityEvent) -> ActivityResponse:
        return cls(
            id=event.id,
            user_id=event.actor_user_id,
            activity_type=event.activity_type,
            reference_type=event.reference_type,
            reference_id=event.reference_id,
            metadata=event.metadata,
            visibility=event.visibility,
            created_at=event.created_at,
        )


class FeedResponse(BaseModel):
    activities: list[ActivityResponse]
    limit: int
