from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone

from ..analytics.store import RecommendationRecord, record_event
from . import data_store
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .engine import calculate_recommendations
from .models import (
    Event,
    RecommendationParams,
    RecommendationRequest,
    RecommendationResult,
)
from .preferences import resolve_history, resolve_preferences

logger = logging.getLogger(__name__)


async def _load_candidates(now: datetime) -> list[Event]:
    try:
        return await data_store.list_upcoming_events(now)
    except Exception:
        logger.warning("Event catalog unavailable, recommending from an empty catalog", exc_info=True)
        return []


async def get_recommendations(
    user_id: str,
    request: RecommendationRequest,
    now: datetime | None = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> RecommendationResult:
    """Fetch everything the engine needs, then run it once.

    This is the only place the wall clock is read; the engine gets ``now``.
    """
    start_time = time.time()
    params = RecommendationParams(
        user_id=user_id,
        limit=request.limit,
        include_trending=request.include_trending,
        include_social=request.include_social,
        exclude_event_ids=frozenset(request.exclude_event_ids),
        user_location=request.location,
        now=now or request.now or datetime.now(timezone.utc),
    )

    preferences, history, events = await asyncio.gather(
        resolve_preferences(user_id, config),
        resolve_history(user_id),
        _load_candidates(params.now),
    )

    result = calculate_recommendations(events, preferences, history, params, config)

    elapsed_ms = round((time.time() - start_time) * 1000, 1)
    cold_start = preferences.last_updated is None and not history.category_interactions
    record_event("recommendation", RecommendationRecord(
        user_id=user_id,
        limit=request.limit,
        include_trending=request.include_trending,
        include_social=request.include_social,
        total_candidates=result.total_candidates,
        results_returned=len(result.recommendations),
        aggregate_score=result.aggregate_score,
        categories=[r.event.category.value for r in result.recommendations],
        reason_tags=[reason.tag.value for r in result.recommendations for reason in r.reasons],
        algorithm_version=result.algorithm_version,
        cold_start=cold_start,
        response_time_ms=elapsed_ms,
    ))
    logger.info(
        "Served %d recommendations to %s in %.1f ms",
        len(result.recommendations), user_id, elapsed_ms,
    )
    return result
