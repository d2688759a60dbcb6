from __future__ import annotations

import logging
from datetime import datetime

from . import data_store
from .categories import EventCategory
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .features import haversine_km
from .models import (
    MAX_FAVORITE_LOCATIONS,
    GeoPoint,
    PreferencesUpdate,
    UserEventHistory,
    UserPreferences,
)

logger = logging.getLogger(__name__)


def create_default_preferences(
    user_id: str,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> UserPreferences:
    """Uniform interest across every category and the platform-wide radius."""
    return UserPreferences(
        user_id=user_id,
        category_weights={category: config.default_affinity for category in EventCategory},
        preferred_radius_km=config.default_radius_km,
    )


def create_empty_history(user_id: str) -> UserEventHistory:
    return UserEventHistory(user_id=user_id)


async def resolve_preferences(
    user_id: str,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> UserPreferences:
    """Stored preferences, or in-memory defaults for a cold-start user.

    Defaults are not written back; persisting them is the caller's call.
    """
    try:
        stored = await data_store.get_preferences(user_id)
    except Exception:
        logger.warning("Preference lookup failed for %s, using defaults", user_id, exc_info=True)
        stored = None
    return stored if stored is not None else create_default_preferences(user_id, config)


async def resolve_history(user_id: str) -> UserEventHistory:
    try:
        stored = await data_store.get_history(user_id)
    except Exception:
        logger.warning("History lookup failed for %s, using empty history", user_id, exc_info=True)
        stored = None
    return stored if stored is not None else create_empty_history(user_id)


async def create_default_preferences_record(
    user_id: str,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> UserPreferences:
    """Persist the cold-start defaults for a user who has none yet."""
    existing = await data_store.get_preferences(user_id)
    if existing is not None:
        return existing
    return await data_store.save_preferences(create_default_preferences(user_id, config))


async def update_preferences(
    user_id: str,
    update: PreferencesUpdate,
    now: datetime,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> UserPreferences:
    """Merge an explicit preference edit into the stored record."""
    current = await create_default_preferences_record(user_id, config)
    changes: dict = {"last_updated": now}
    if update.category_weights is not None:
        changes["category_weights"] = {**current.category_weights, **update.category_weights}
    if update.preferred_radius_km is not None:
        changes["preferred_radius_km"] = update.preferred_radius_km
    if update.home_location is not None:
        changes["home_location"] = update.home_location
    # Re-validate so out-of-range weights are rejected before they are stored.
    merged = UserPreferences.model_validate({**current.model_dump(), **changes})
    logger.info("Updated preferences for %s", user_id)
    return await data_store.save_preferences(merged)


async def add_favorite_location(
    user_id: str,
    location: GeoPoint,
    now: datetime,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> UserPreferences:
    """Remember a place the user goes to often.

    A place within ``favorite_merge_km`` of one already saved is ignored.
    Only the most recent places are kept; the oldest is dropped first.
    """
    if not location.is_valid:
        raise ValueError(f"Cannot save an invalid location: ({location.lat}, {location.lng})")
    current = await create_default_preferences_record(user_id, config)
    if any(haversine_km(saved, location) < config.favorite_merge_km for saved in current.favorite_locations):
        logger.debug("Ignoring favorite location for %s: already saved nearby", user_id)
        return current

    kept = current.favorite_locations[-(MAX_FAVORITE_LOCATIONS - 1):]
    updated = current.model_copy(update={
        "favorite_locations": [*kept, location],
        "last_updated": now,
    })
    logger.info("Added favorite location for %s", user_id)
    return await data_store.save_preferences(updated)
