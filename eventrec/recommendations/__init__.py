"""
Event recommendation engine.

Responsibilities:
- Accept a user's category interests, interaction history and a candidate catalog.
- Score every candidate from independent signals (affinity, distance, urgency, trending, social).
- Rank deterministically, drop excluded events and cap any single category.
- Return explained recommendations ready for API serialisation.
"""
from .engine import calculate_recommendations

__all__ = ["calculate_recommendations"]
