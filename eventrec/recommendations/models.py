from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from .categories import EventCategory, infer_category, normalize_category

MAX_FAVORITE_LOCATIONS = 5


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _normalize_category_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {normalize_category(k): v for k, v in value.items()}
    return value


class Signal(str, Enum):
    category = "category"
    distance = "distance"
    urgency = "urgency"
    trending = "trending"
    social = "social"


class ReasonTag(str, Enum):
    matches_interests = "matches-interests"
    nearby = "nearby"
    trending = "trending"
    friends_attending = "friends-attending"
    starting_soon = "starting-soon"


class InteractionKind(str, Enum):
    attended = "attended"
    rsvp = "rsvp"
    liked = "liked"
    saved = "saved"
    searched = "searched"


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float

    @property
    def is_valid(self) -> bool:
        """False for non-finite, out-of-range, or (0, 0) placeholder points."""
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            return False
        if not (-90.0 <= self.lat <= 90.0 and -180.0 <= self.lng <= 180.0):
            return False
        return not (self.lat == 0.0 and self.lng == 0.0)


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = ""
    description: str = ""
    category: EventCategory
    subcategory: str | None = None
    tags: frozenset[str] = Field(default_factory=frozenset)
    starts_at: datetime
    location: GeoPoint | None = None
    attendee_count: int = Field(default=0, ge=0)
    attendee_ids: frozenset[str] = Field(default_factory=frozenset)
    created_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _infer_missing_category(cls, data: Any) -> Any:
        """Events posted without a category get one guessed from their text."""
        if isinstance(data, dict) and not data.get("category"):
            guessed = infer_category(
                data.get("title") or "",
                data.get("description") or "",
                data.get("tags") or (),
            )
            data = {**data, "category": guessed}
        return data

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value: Any) -> EventCategory:
        return normalize_category(value)

    @field_validator("starts_at", "created_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @field_serializer("tags", "attendee_ids")
    def _sorted_ids(self, value: frozenset[str]) -> list[str]:
        return sorted(value)


class UserPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    category_weights: dict[EventCategory, float] = Field(default_factory=dict)
    preferred_radius_km: float = Field(..., gt=0.0)
    home_location: GeoPoint | None = None
    # Places the user often goes to, oldest first
    favorite_locations: list[GeoPoint] = Field(default_factory=list, max_length=MAX_FAVORITE_LOCATIONS)
    last_updated: datetime | None = None

    @field_validator("category_weights", mode="before")
    @classmethod
    def _weight_keys(cls, value: Any) -> Any:
        return _normalize_category_keys(value)

    @field_validator("category_weights")
    @classmethod
    def _weight_range(cls, value: dict[EventCategory, float]) -> dict[EventCategory, float]:
        for category, weight in value.items():
            if not (math.isfinite(weight) and 0.0 <= weight <= 1.0):
                raise ValueError(f"Weight for {category.value!r} must be within [0, 1], got {weight}")
        return value

    @field_validator("last_updated")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class UserEventHistory(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    attended_event_ids: frozenset[str] = Field(default_factory=frozenset)
    category_interactions: dict[EventCategory, int] = Field(default_factory=dict)
    last_interaction_at: dict[EventCategory, datetime] = Field(default_factory=dict)
    friend_ids: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("category_interactions", "last_interaction_at", mode="before")
    @classmethod
    def _category_keys(cls, value: Any) -> Any:
        return _normalize_category_keys(value)

    @field_validator("category_interactions")
    @classmethod
    def _non_negative(cls, value: dict[EventCategory, int]) -> dict[EventCategory, int]:
        if any(count < 0 for count in value.values()):
            raise ValueError("Interaction counters must be non-negative")
        return value

    @field_validator("last_interaction_at")
    @classmethod
    def _utc(cls, value: dict[EventCategory, datetime]) -> dict[EventCategory, datetime]:
        return {category: _as_utc(ts) for category, ts in value.items()}

    @field_serializer("attended_event_ids", "friend_ids")
    def _sorted_ids(self, value: frozenset[str]) -> list[str]:
        return sorted(value)


class RecommendationParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    limit: int = 10
    include_trending: bool = True
    include_social: bool = False
    exclude_event_ids: frozenset[str] = Field(default_factory=frozenset)
    user_location: GeoPoint | None = None
    now: datetime

    @field_validator("now")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_serializer("exclude_event_ids")
    def _sorted_ids(self, value: frozenset[str]) -> list[str]:
        return sorted(value)


class RecommendationReason(BaseModel):
    tag: ReasonTag
    detail: str | None = None


class EventRecommendation(BaseModel):
    event: Event
    score: float = Field(..., ge=0.0, le=1.0)
    reasons: list[RecommendationReason]
    rank: int = Field(..., ge=1)
    signals: dict[Signal, float] = Field(default_factory=dict)


class RecommendationResult(BaseModel):
    recommendations: list[EventRecommendation]
    aggregate_score: float = Field(..., ge=0.0, le=1.0)
    algorithm_version: str
    generated_at: datetime
    total_candidates: int = 0


# ── HTTP request bodies ──────────────────────────────────────────────────


class RecommendationRequest(BaseModel):
    limit: int = Field(default=10, ge=1, le=50)
    include_trending: bool = True
    include_social: bool = False
    exclude_event_ids: list[str] = Field(default_factory=list)
    location: GeoPoint | None = Field(
        default=None, description="Current user position; falls back to the saved home and favorite places",
    )
    now: datetime | None = Field(
        default=None, description="Reference time, mainly for reproducible requests",
    )


class PreferencesUpdate(BaseModel):
    category_weights: dict[EventCategory, float] | None = None
    preferred_radius_km: float | None = Field(default=None, gt=0.0)
    home_location: GeoPoint | None = None

    @field_validator("category_weights", mode="before")
    @classmethod
    def _weight_keys(cls, value: Any) -> Any:
        return _normalize_category_keys(value)


class FavoriteLocationRequest(BaseModel):
    location: GeoPoint


class InteractionRequest(BaseModel):
    event_id: str = Field(..., min_length=1)
    kind: InteractionKind
