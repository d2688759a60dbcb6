from __future__ import annotations

import math
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv

if TYPE_CHECKING:
    from .models import Signal

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

# Bump whenever a weight, decay constant or the diversification cap changes.
ALGORITHM_VERSION = "2.0.0"


@dataclass(frozen=True)
class SignalWeights:
    category: float = 0.40
    distance: float = 0.25
    urgency: float = 0.20
    trending: float = 0.10
    social: float = 0.05

    def __post_init__(self) -> None:
        values = [getattr(self, f.name) for f in fields(self)]
        if any(not math.isfinite(v) or v < 0 for v in values):
            raise ValueError(f"Signal weights must be finite and non-negative: {values}")
        if sum(values) <= 0:
            raise ValueError("At least one signal weight must be positive")

    def for_signal(self, signal: Signal) -> float:
        return getattr(self, signal.value)


@dataclass(frozen=True)
class EngineConfig:
    weights: SignalWeights = field(default_factory=SignalWeights)

    # Category affinity
    default_affinity: float = 0.5
    baseline_affinity: float = 0.1
    affinity_floor: float = 0.05

    # Distance decay reaches 0 at twice this radius
    default_radius_km: float = float(os.getenv("EVENTREC_DEFAULT_RADIUS_KM", "15"))
    # A new favorite this close to a saved one is a duplicate
    favorite_merge_km: float = 1.0

    # Urgency: floor + (1 - floor) * exp(-hours / decay_hours)
    urgency_decay_hours: float = 48.0
    urgency_floor: float = 0.05
    starting_soon_threshold: float = 0.4

    # Social
    interaction_half_life_days: float = 30.0
    friends_saturation: int = 3

    reason_epsilon: float = 0.05
    diversity_divisor: int = 3
    algorithm_version: str = ALGORITHM_VERSION

    def __post_init__(self) -> None:
        for name in ("default_affinity", "baseline_affinity", "affinity_floor"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{name} must be within (0, 1], got {value}")
        if not 0.0 < self.urgency_floor < 1.0:
            raise ValueError(f"urgency_floor must be within (0, 1), got {self.urgency_floor}")
        for name in ("default_radius_km", "favorite_merge_km", "urgency_decay_hours", "interaction_half_life_days"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("friends_saturation", "diversity_divisor"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")


DEFAULT_ENGINE_CONFIG = EngineConfig()
