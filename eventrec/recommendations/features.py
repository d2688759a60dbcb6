"""
Per-event signal extraction.

Every signal lands in [0, 1]. A signal that is disabled by the caller or
undefined for an event (no usable coordinates) is ``None`` and is left out of
the weighted sum entirely, instead of counting as a zero.

Trending is the one signal that depends on the whole candidate set, so its
population statistics are computed up front by ``TrendingStats.from_events``
and handed to the per-event pass.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

import numpy as np

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .models import (
    Event,
    GeoPoint,
    RecommendationParams,
    Signal,
    UserEventHistory,
    UserPreferences,
)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class TrendingStats:
    """Spread of log-scaled attendee counts across the candidate set."""

    low: float
    high: float

    @classmethod
    def from_events(cls, events: Sequence[Event]) -> TrendingStats | None:
        if not events:
            return None
        counts = np.log1p(np.array([float(e.attendee_count) for e in events], dtype=np.float64))
        return cls(low=float(counts.min()), high=float(counts.max()))

    def scale(self, attendee_count: int) -> float:
        if self.high <= self.low:
            return 0.0
        # math.log1p accepts ints wider than int64
        value = (math.log1p(attendee_count) - self.low) / (self.high - self.low)
        return min(1.0, max(0.0, value))


@dataclass(frozen=True)
class FeatureVector:
    category: float
    urgency: float
    distance: float | None = None
    trending: float | None = None
    social: float | None = None
    # Raw measurements kept for reason details
    distance_km: float | None = None
    hours_until: float = 0.0
    friends_attending: int = 0

    def enabled(self) -> dict[Signal, float]:
        """Defined signals in canonical order."""
        values = {
            Signal.category: self.category,
            Signal.distance: self.distance,
            Signal.urgency: self.urgency,
            Signal.trending: self.trending,
            Signal.social: self.social,
        }
        return {signal: v for signal, v in values.items() if v is not None}


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.lng - a.lng)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    h = min(1.0, h)
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def category_affinity(
    event: Event,
    preferences: UserPreferences,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> float:
    weight = preferences.category_weights.get(event.category, config.baseline_affinity)
    return max(config.affinity_floor, min(1.0, weight))


def distance_decay(distance_km: float, radius_km: float) -> float:
    """Linear falloff: 1.0 at the origin, exactly 0.0 from twice the radius on."""
    return min(1.0, max(0.0, 1.0 - distance_km / (2.0 * radius_km)))


def urgency(hours_until: float, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> float:
    hours = max(0.0, hours_until)
    floor = config.urgency_floor
    return floor + (1.0 - floor) * math.exp(-hours / config.urgency_decay_hours)


def social_signal(
    event: Event,
    history: UserEventHistory,
    now: datetime,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> tuple[float, int]:
    """Return (signal, number of friends attending)."""
    interest = 0.0
    peak = max(history.category_interactions.values(), default=0)
    if peak > 0:
        interest = history.category_interactions.get(event.category, 0) / peak
        last = history.last_interaction_at.get(event.category)
        if last is not None and interest > 0:
            idle_days = max(0.0, (now - last).total_seconds() / 86400.0)
            interest *= 0.5 ** (idle_days / config.interaction_half_life_days)

    friends = len(event.attendee_ids & history.friend_ids)
    friend_share = min(1.0, friends / config.friends_saturation)
    return max(interest, friend_share), friends


def resolve_origins(params: RecommendationParams, preferences: UserPreferences) -> list[GeoPoint]:
    """Points distance is measured from.

    A valid live position wins outright. Otherwise every valid saved place
    (home plus favorites) counts and each event is measured from the nearest.
    """
    if params.user_location is not None and params.user_location.is_valid:
        return [params.user_location]
    saved = [preferences.home_location, *preferences.favorite_locations]
    return [point for point in saved if point is not None and point.is_valid]


def extract_features(
    event: Event,
    preferences: UserPreferences,
    history: UserEventHistory,
    params: RecommendationParams,
    origins: Sequence[GeoPoint] = (),
    trending: TrendingStats | None = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> FeatureVector:
    distance_km = None
    distance = None
    if origins and event.location is not None and event.location.is_valid:
        distance_km = min(haversine_km(origin, event.location) for origin in origins)
        distance = distance_decay(distance_km, preferences.preferred_radius_km)

    hours_until = (event.starts_at - params.now).total_seconds() / 3600.0

    trending_value = None
    if params.include_trending and trending is not None:
        trending_value = trending.scale(event.attendee_count)

    social_value = None
    friends = 0
    if params.include_social:
        social_value, friends = social_signal(event, history, params.now, config)

    return FeatureVector(
        category=category_affinity(event, preferences, config),
        urgency=urgency(hours_until, config),
        distance=distance,
        trending=trending_value,
        social=social_value,
        distance_km=distance_km,
        hours_until=hours_until,
        friends_attending=friends,
    )


def extract_all(
    events: Sequence[Event],
    preferences: UserPreferences,
    history: UserEventHistory,
    params: RecommendationParams,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> list[FeatureVector]:
    """Trending pre-pass over the full set, then independent per-event extraction."""
    stats = TrendingStats.from_events(events) if params.include_trending else None
    origins = resolve_origins(params, preferences)
    return [
        extract_features(event, preferences, history, params, origins, stats, config)
        for event in events
    ]
