from __future__ import annotations

import math
from collections import Counter
from typing import Iterable, Sequence

from .scoring import ScoredEvent


def _order_key(item: ScoredEvent) -> tuple[float, str]:
    return (-item.score, item.event.id)


def diversification_cap(limit: int, divisor: int = 3) -> int:
    """Maximum number of results any one category may take: ceil(limit / divisor)."""
    return math.ceil(limit / divisor)


def diversify(ordered: Sequence[ScoredEvent], limit: int, cap: int) -> list[ScoredEvent]:
    """Pick up to ``limit`` items from an already ordered list, capping each category.

    Items over the cap are deferred and only used to fill whatever room the
    primary pass leaves. The selection is returned in score order.
    """
    picked: list[ScoredEvent] = []
    deferred: list[ScoredEvent] = []
    per_category: Counter = Counter()

    for item in ordered:
        if len(picked) >= limit:
            break
        category = item.event.category
        if per_category[category] >= cap:
            deferred.append(item)
            continue
        per_category[category] += 1
        picked.append(item)

    room = limit - len(picked)
    if room > 0:
        picked.extend(deferred[:room])

    return sorted(picked, key=_order_key)


def rank_events(
    scored: Iterable[ScoredEvent],
    limit: int,
    excluded_ids: frozenset[str] = frozenset(),
    divisor: int = 3,
) -> list[ScoredEvent]:
    if limit <= 0:
        return []
    eligible = [item for item in scored if item.event.id not in excluded_ids]
    ordered = sorted(eligible, key=_order_key)
    return diversify(ordered, limit, diversification_cap(limit, divisor))
