"""
Event recommendation engine.

Pipeline:
- Resolve preferences/history (defaults for cold-start users).
- Extract per-event signals, with the trending statistics computed first.
- Score each event as a re-normalized weighted mean of its defined signals.
- Rank, exclude and diversify by category.
- Attach reasons and assemble the result.

``calculate_recommendations`` is pure: no I/O and no clock reads, the
reference time comes in through ``params.now``.
"""
from __future__ import annotations

import logging
from typing import Iterable

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .features import extract_all
from .models import (
    Event,
    EventRecommendation,
    RecommendationParams,
    RecommendationResult,
    UserEventHistory,
    UserPreferences,
)
from .preferences import create_default_preferences, create_empty_history
from .ranking import rank_events
from .reasons import generate_reasons
from .scoring import score_event

logger = logging.getLogger(__name__)


def _unique_events(events: Iterable[Event]) -> list[Event]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[Event] = []
    for event in events:
        if event.id not in seen:
            seen.add(event.id)
            unique.append(event)
    return unique


def calculate_recommendations(
    events: Iterable[Event],
    preferences: UserPreferences | None,
    history: UserEventHistory | None,
    params: RecommendationParams,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> RecommendationResult:
    if preferences is None:
        preferences = create_default_preferences(params.user_id, config)
    if history is None:
        history = create_empty_history(params.user_id)

    candidates = _unique_events(events)
    excluded = params.exclude_event_ids | history.attended_event_ids
    eligible_count = sum(1 for e in candidates if e.id not in excluded)

    if params.limit <= 0 or not candidates:
        return RecommendationResult(
            recommendations=[],
            aggregate_score=0.0,
            algorithm_version=config.algorithm_version,
            generated_at=params.now,
            total_candidates=eligible_count,
        )

    features = extract_all(candidates, preferences, history, params, config)
    scored = [score_event(e, f, config.weights) for e, f in zip(candidates, features)]
    ranked = rank_events(scored, params.limit, excluded, config.diversity_divisor)

    recommendations = [
        EventRecommendation(
            event=item.event,
            score=item.score,
            reasons=generate_reasons(item, config),
            rank=position,
            signals={s: round(v, 4) for s, v in item.features.enabled().items()},
        )
        for position, item in enumerate(ranked, start=1)
    ]

    aggregate = 0.0
    if recommendations:
        aggregate = round(sum(r.score for r in recommendations) / len(recommendations), 4)

    logger.debug(
        "Ranked %d of %d candidates for %s (excluded=%d)",
        len(recommendations), len(candidates), params.user_id, len(candidates) - eligible_count,
    )

    return RecommendationResult(
        recommendations=recommendations,
        aggregate_score=min(1.0, aggregate),
        algorithm_version=config.algorithm_version,
        generated_at=params.now,
        total_candidates=eligible_count,
    )
