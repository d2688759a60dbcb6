from __future__ import annotations

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .models import ReasonTag, RecommendationReason, Signal
from .scoring import ScoredEvent

SIGNAL_TAGS: dict[Signal, ReasonTag] = {
    Signal.category: ReasonTag.matches_interests,
    Signal.distance: ReasonTag.nearby,
    Signal.urgency: ReasonTag.starting_soon,
    Signal.trending: ReasonTag.trending,
    Signal.social: ReasonTag.friends_attending,
}

TAG_ORDER: list[ReasonTag] = list(ReasonTag)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def describe(tag: ReasonTag, item: ScoredEvent) -> str | None:
    event = item.event
    features = item.features
    if tag is ReasonTag.matches_interests:
        return f"Matches your interest in {event.category.value}"
    if tag is ReasonTag.nearby:
        if features.distance_km is None:
            return None
        return f"{features.distance_km:.1f} km away"
    if tag is ReasonTag.trending:
        noun = "person" if event.attendee_count == 1 else "people"
        return f"{event.attendee_count} {noun} attending"
    if tag is ReasonTag.friends_attending:
        if features.friends_attending:
            return f"{_plural(features.friends_attending, 'friend')} attending"
        return f"You often join {event.category.value} events"
    if tag is ReasonTag.starting_soon:
        hours = max(0.0, features.hours_until)
        if hours < 1:
            return "Starts in less than an hour"
        if hours < 48:
            return f"Starts in {_plural(round(hours), 'hour')}"
        return f"Starts in {_plural(round(hours / 24), 'day')}"
    return None


def generate_reasons(
    item: ScoredEvent,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> list[RecommendationReason]:
    """Tag every signal whose contribution is within epsilon of the strongest one."""
    positive = {s: c for s, c in item.contributions.items() if c > 0}
    tags: set[ReasonTag] = set()
    if positive:
        peak = max(positive.values())
        tags = {SIGNAL_TAGS[s] for s, c in positive.items() if peak - c <= config.reason_epsilon}

    if item.features.urgency >= config.starting_soon_threshold:
        tags.add(ReasonTag.starting_soon)
    if not tags:
        tags.add(ReasonTag.matches_interests)

    return [
        RecommendationReason(tag=tag, detail=describe(tag, item))
        for tag in TAG_ORDER
        if tag in tags
    ]
