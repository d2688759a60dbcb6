"""
In-memory stand-ins for the preference store, history store and event catalog.

The async signatures match what a networked backend would expose, so the
retrieval shell does not change when a real store is plugged in.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

from pydantic import TypeAdapter

from .models import Event, InteractionKind, UserEventHistory, UserPreferences

logger = logging.getLogger(__name__)

_CATALOG_JSON = Path(
    os.getenv(
        "EVENTREC_CATALOG_PATH",
        str(Path(__file__).resolve().parent.parent / "data" / "events.json"),
    )
)

_events: dict[str, Event] = {}
_preferences: dict[str, UserPreferences] = {}
_histories: dict[str, UserEventHistory] = {}
_catalog_loaded: bool = False

_EVENT_LIST = TypeAdapter(list[Event])


def load_catalog(path: Path) -> int:
    """Read a JSON array of events into the catalog. Returns how many were loaded."""
    events = _EVENT_LIST.validate_json(path.read_bytes())
    for event in events:
        _events[event.id] = event
    logger.info("Loaded %d events from %s", len(events), path)
    return len(events)


def _ensure_catalog() -> None:
    """Load the on-disk catalog once. A failed load is retried on the next call."""
    global _catalog_loaded
    if _catalog_loaded:
        return
    if _CATALOG_JSON.exists():
        try:
            load_catalog(_CATALOG_JSON)
        except Exception:
            logger.error("Could not load event catalog from %s", _CATALOG_JSON, exc_info=True)
            raise
    _catalog_loaded = True


# ── Event catalog ────────────────────────────────────────────────────────


async def add_event(event: Event) -> Event:
    _ensure_catalog()
    _events[event.id] = event
    return event


async def get_event(event_id: str) -> Event | None:
    _ensure_catalog()
    return _events.get(event_id)


async def list_upcoming_events(now: datetime) -> list[Event]:
    """Events starting at or after ``now``, soonest first."""
    _ensure_catalog()
    upcoming = [e for e in _events.values() if e.starts_at >= now]
    return sorted(upcoming, key=lambda e: (e.starts_at, e.id))


# ── Preferences ──────────────────────────────────────────────────────────


async def get_preferences(user_id: str) -> UserPreferences | None:
    return _preferences.get(user_id)


async def save_preferences(preferences: UserPreferences) -> UserPreferences:
    _preferences[preferences.user_id] = preferences
    return preferences


# ── History ──────────────────────────────────────────────────────────────


async def get_history(user_id: str) -> UserEventHistory | None:
    return _histories.get(user_id)


async def save_history(history: UserEventHistory) -> UserEventHistory:
    _histories[history.user_id] = history
    return history


async def record_interaction(
    user_id: str,
    event: Event,
    kind: InteractionKind,
    at: datetime,
) -> UserEventHistory:
    """Bump the category counter; attended and RSVP'd events also join the exclusion set."""
    history = _histories.get(user_id) or UserEventHistory(user_id=user_id)

    attended = history.attended_event_ids
    if kind in (InteractionKind.attended, InteractionKind.rsvp):
        attended = attended | {event.id}

    counters = dict(history.category_interactions)
    counters[event.category] = counters.get(event.category, 0) + 1
    last_seen = {**history.last_interaction_at, event.category: at}

    updated = UserEventHistory(
        user_id=user_id,
        attended_event_ids=attended,
        category_interactions=counters,
        last_interaction_at=last_seen,
        friend_ids=history.friend_ids,
    )
    return await save_history(updated)


def clear_store() -> None:
    global _catalog_loaded
    _events.clear()
    _preferences.clear()
    _histories.clear()
    # Skip the on-disk catalog after an explicit reset
    _catalog_loaded = True
