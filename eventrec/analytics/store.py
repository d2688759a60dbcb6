"""
In-process serving log.

Every recommendation request and every recorded interaction lands here as a
flat record tagged with its ``type`` and a ``timestamp``. The aggregator reads
the ``recommendation`` records only.
"""
from __future__ import annotations

import time
from typing import Any, Literal, TypedDict

EventType = Literal["recommendation", "interaction"]


class RecommendationRecord(TypedDict):
    user_id: str
    limit: int
    include_trending: bool
    include_social: bool
    total_candidates: int
    results_returned: int
    aggregate_score: float
    categories: list[str]
    reason_tags: list[str]
    algorithm_version: str
    cold_start: bool
    response_time_ms: float


class InteractionRecord(TypedDict):
    user_id: str
    event_id: str
    category: str
    kind: str


_events: list[dict[str, Any]] = []


def record_event(event_type: EventType, data: RecommendationRecord | InteractionRecord) -> None:
    _events.append({"type": event_type, "timestamp": time.time(), **data})


def get_events(event_type: EventType | None = None) -> list[dict[str, Any]]:
    """Logged records, oldest first, optionally limited to one type."""
    if event_type is None:
        return list(_events)
    return [e for e in _events if e["type"] == event_type]


def clear_events() -> None:
    _events.clear()
