from __future__ import annotations

from dataclasses import dataclass, field

from .config import DEFAULT_ENGINE_CONFIG, SignalWeights
from .features import FeatureVector
from .models import Event, Signal


@dataclass(frozen=True)
class ScoredEvent:
    event: Event
    features: FeatureVector
    score: float
    # Each signal's share of the score: weight * value / total enabled weight
    contributions: dict[Signal, float] = field(default_factory=dict)


def combine_signals(
    features: FeatureVector,
    weights: SignalWeights = DEFAULT_ENGINE_CONFIG.weights,
) -> tuple[float, dict[Signal, float]]:
    """Weighted mean over the defined signals only, clamped to [0, 1].

    Missing signals drop out of both numerator and denominator, so an event
    without coordinates is judged on what it does have.
    """
    signals = features.enabled()
    total_weight = sum(weights.for_signal(s) for s in signals)
    if total_weight <= 0:
        return 0.0, {s: 0.0 for s in signals}

    contributions = {s: weights.for_signal(s) * value / total_weight for s, value in signals.items()}
    score = sum(contributions.values())
    return min(1.0, max(0.0, score)), contributions


def score_event(
    event: Event,
    features: FeatureVector,
    weights: SignalWeights = DEFAULT_ENGINE_CONFIG.weights,
) -> ScoredEvent:
    score, contributions = combine_signals(features, weights)
    # Ranking and output share the same 4-place value
    return ScoredEvent(event=event, features=features, score=round(score, 4), contributions=contributions)
