from __future__ import annotations

from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException

from .analytics.aggregator import compute_analytics
from .analytics.store import InteractionRecord, get_events, record_event
from .recommendations import data_store
from .recommendations.categories import EventCategory
from .recommendations.config import DEFAULT_ENGINE_CONFIG
from .recommendations.models import (
    Event,
    FavoriteLocationRequest,
    InteractionRequest,
    PreferencesUpdate,
    ReasonTag,
    RecommendationRequest,
    RecommendationResult,
    UserEventHistory,
    UserPreferences,
)
from .recommendations.preferences import (
    add_favorite_location,
    resolve_preferences,
    update_preferences,
)
from .recommendations.retrieval import get_recommendations

app = FastAPI(title="Event Recommendation API", version=DEFAULT_ENGINE_CONFIG.algorithm_version)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
def metadata() -> dict:
    return {
        "categories": [c.value for c in EventCategory],
        "reason_tags": [t.value for t in ReasonTag],
        "algorithm_version": DEFAULT_ENGINE_CONFIG.algorithm_version,
        "default_radius_km": DEFAULT_ENGINE_CONFIG.default_radius_km,
    }


# ── Event catalog ────────────────────────────────────────────────────────


@app.post("/events", response_model=Event, status_code=201)
async def create_event(body: Event) -> Event:
    return await data_store.add_event(body)


@app.get("/events", response_model=list[Event])
async def upcoming_events() -> list[Event]:
    return await data_store.list_upcoming_events(datetime.now(timezone.utc))


# ── Preferences & history ────────────────────────────────────────────────


@app.get("/preferences/{user_id}", response_model=UserPreferences)
async def read_preferences(user_id: str) -> UserPreferences:
    return await resolve_preferences(user_id)


@app.put("/preferences/{user_id}", response_model=UserPreferences)
async def write_preferences(user_id: str, body: PreferencesUpdate) -> UserPreferences:
    try:
        return await update_preferences(user_id, body, datetime.now(timezone.utc))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.post("/preferences/{user_id}/locations", response_model=UserPreferences)
async def save_favorite_location(user_id: str, body: FavoriteLocationRequest) -> UserPreferences:
    try:
        return await add_favorite_location(user_id, body.location, datetime.now(timezone.utc))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.post("/history/{user_id}/interactions", response_model=UserEventHistory)
async def add_interaction(user_id: str, body: InteractionRequest) -> UserEventHistory:
    event = await data_store.get_event(body.event_id)
    if event is None:
        raise HTTPException(status_code=404, detail=f"Unknown event: {body.event_id}")
    history = await data_store.record_interaction(
        user_id, event, body.kind, datetime.now(timezone.utc),
    )
    record_event("interaction", InteractionRecord(
        user_id=user_id,
        event_id=event.id,
        category=event.category.value,
        kind=body.kind.value,
    ))
    return history


# ── Recommendations ──────────────────────────────────────────────────────


@app.post("/recommendations/{user_id}", response_model=RecommendationResult)
async def recommendations(user_id: str, body: RecommendationRequest) -> RecommendationResult:
    return await get_recommendations(user_id, body)


@app.get("/analytics")
def analytics() -> dict:
    return compute_analytics(get_events())
