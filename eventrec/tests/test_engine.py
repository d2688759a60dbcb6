from __future__ import annotations

import math
from collections import Counter

import pytest
from conftest import NOW, ORIGIN, north_of

from eventrec.recommendations import calculate_recommendations
from eventrec.recommendations.config import ALGORITHM_VERSION
from eventrec.recommendations.features import extract_features
from eventrec.recommendations.models import (
    GeoPoint,
    ReasonTag,
    RecommendationParams,
    Signal,
    UserEventHistory,
    UserPreferences,
)
from eventrec.recommendations.preferences import create_default_preferences


def _params(limit=3, **extra) -> RecommendationParams:
    extra.setdefault("include_trending", False)
    extra.setdefault("include_social", False)
    return RecommendationParams(user_id="u1", limit=limit, now=NOW, user_location=ORIGIN, **extra)


def _music_fan() -> UserPreferences:
    weights = {c: 0.1 for c in ("sports", "technology", "art", "food", "education")}
    weights["music"] = 0.9
    return UserPreferences(user_id="u1", category_weights=weights, preferred_radius_km=10)


def _scenario_events(make_event):
    return [
        make_event("E1", "music", km=1, hours=2),
        make_event("E2", "sports", km=30, hours=240),
        make_event("E3", "music", km=2, hours=72),
        make_event("E4", "technology", hours=24, location=GeoPoint(lat=999.0, lng=0.0)),
        make_event("E5", "music", km=40, hours=24),
    ]


# ── Scenario ─────────────────────────────────────────────────────────────


class TestScenario:
    def test_ordering(self, make_event):
        result = calculate_recommendations(
            _scenario_events(make_event), _music_fan(), None, _params(limit=3),
        )
        ids = [r.event.id for r in result.recommendations]
        assert ids[0] == "E1"
        assert "E4" in ids
        assert ids.index("E4") < ids.index("E2")
        assert "E5" not in ids[: ids.index("E4") + 1]

    def test_missing_coordinates_skip_distance(self, make_event):
        result = calculate_recommendations(
            _scenario_events(make_event), _music_fan(), None, _params(limit=3),
        )
        e4 = next(r for r in result.recommendations if r.event.id == "E4")
        assert Signal.distance not in e4.signals
        assert set(e4.signals) == {Signal.category, Signal.urgency}

    def test_far_event_has_zero_distance_signal(self, make_event):
        e5 = _scenario_events(make_event)[4]
        features = extract_features(e5, _music_fan(), UserEventHistory(user_id="u1"), _params(), [ORIGIN])
        assert features.distance == 0.0
        assert features.distance_km > 20

    def test_top_reasons(self, make_event):
        result = calculate_recommendations(
            _scenario_events(make_event), _music_fan(), None, _params(limit=3),
        )
        tags = [r.tag for r in result.recommendations[0].reasons]
        assert tags == [ReasonTag.matches_interests, ReasonTag.starting_soon]


# ── Invariants ───────────────────────────────────────────────────────────


def test_result_metadata(make_event):
    result = calculate_recommendations(
        _scenario_events(make_event), _music_fan(), None, _params(limit=3),
    )
    assert result.algorithm_version == ALGORITHM_VERSION
    assert result.generated_at == NOW
    assert [r.rank for r in result.recommendations] == [1, 2, 3]
    expected = sum(r.score for r in result.recommendations) / 3
    assert math.isclose(result.aggregate_score, expected, abs_tol=1e-4)


def test_bounded_by_candidates(make_event):
    events = [make_event("a"), make_event("b", "sports")]
    result = calculate_recommendations(events, None, None, _params(limit=10))
    assert len(result.recommendations) == 2


def test_scores_bounded_and_sorted(make_event):
    events = [
        make_event(f"e{i}", cat, km=i * 3.0, hours=i * 12.0, attendee_count=i * 7)
        for i, cat in enumerate(["music", "sports", "art", "food", "health", "music", "social"])
    ]
    result = calculate_recommendations(events, None, None, _params(limit=7, include_trending=True))
    scores = [r.score for r in result.recommendations]
    assert all(0.0 <= s <= 1.0 for s in scores)
    assert scores == sorted(scores, reverse=True)


def test_deterministic(make_event):
    events = _scenario_events(make_event)
    first = calculate_recommendations(events, _music_fan(), None, _params(limit=4, include_trending=True))
    second = calculate_recommendations(events, _music_fan(), None, _params(limit=4, include_trending=True))
    assert first.model_dump_json() == second.model_dump_json()


def test_exclusion(make_event):
    events = _scenario_events(make_event)
    result = calculate_recommendations(
        events, _music_fan(), None, _params(limit=5, exclude_event_ids={"E1", "E3"}),
    )
    ids = {r.event.id for r in result.recommendations}
    assert ids.isdisjoint({"E1", "E3"})
    assert result.total_candidates == 3


def test_attended_events_are_excluded(make_event):
    history = UserEventHistory(user_id="u1", attended_event_ids={"E1"})
    result = calculate_recommendations(_scenario_events(make_event), _music_fan(), history, _params(limit=5))
    assert "E1" not in {r.event.id for r in result.recommendations}


def test_duplicate_ids_appear_once(make_event):
    events = [make_event("dup", km=1), make_event("dup", km=50), make_event("other", "art")]
    result = calculate_recommendations(events, None, None, _params(limit=5))
    ids = [r.event.id for r in result.recommendations]
    assert ids.count("dup") == 1


def test_diversification_cap(make_event):
    events = [make_event(f"m{i}", "music", km=1 + i) for i in range(6)]
    events += [make_event("s1", "sports", km=25), make_event("t1", "technology", km=25)]
    result = calculate_recommendations(events, _music_fan(), None, _params(limit=3))
    counts = Counter(r.event.category.value for r in result.recommendations)
    assert counts["music"] == 1
    assert len(result.recommendations) == 3


def test_exclusion_does_not_consume_category_slot(make_event):
    events = [
        make_event("m1", "music", km=1),
        make_event("m2", "music", km=3),
        make_event("s1", "sports", km=5),
        make_event("t1", "technology", km=5),
    ]
    result = calculate_recommendations(
        events, _music_fan(), None, _params(limit=3, exclude_event_ids={"m1"}),
    )
    assert "m2" in {r.event.id for r in result.recommendations}


# ── Edge cases ───────────────────────────────────────────────────────────


def test_empty_catalog():
    result = calculate_recommendations([], None, None, _params(limit=5))
    assert result.recommendations == []
    assert result.aggregate_score == 0.0
    assert result.algorithm_version == ALGORITHM_VERSION


def test_non_positive_limit(make_event):
    events = _scenario_events(make_event)
    for limit in (0, -3):
        result = calculate_recommendations(events, _music_fan(), None, _params(limit=limit))
        assert result.recommendations == []
        assert result.aggregate_score == 0.0


def test_cold_start_ranks_by_distance(make_event):
    events = [
        make_event("far", "technology", km=20),
        make_event("near", "music", km=1),
        make_event("mid", "sports", km=5),
    ]
    prefs = create_default_preferences("u1")
    result = calculate_recommendations(events, prefs, None, _params(limit=3))
    assert [r.event.id for r in result.recommendations] == ["near", "mid", "far"]


def test_cold_start_ranks_by_urgency_without_location(make_event):
    events = [
        make_event("later", "music", km=None, hours=200),
        make_event("soon", "sports", km=None, hours=3),
        make_event("tomorrow", "art", km=None, hours=30),
    ]
    params = RecommendationParams(user_id="u1", limit=3, now=NOW, include_trending=False)
    result = calculate_recommendations(events, None, None, params)
    assert [r.event.id for r in result.recommendations] == ["soon", "tomorrow", "later"]


def test_home_location_used_when_no_live_position(make_event):
    prefs = create_default_preferences("u1").model_copy(update={"home_location": ORIGIN})
    params = RecommendationParams(user_id="u1", limit=2, now=NOW, include_trending=False)
    result = calculate_recommendations(
        [make_event("a", km=2), make_event("b", "art", km=12)], prefs, None, params,
    )
    assert all(Signal.distance in r.signals for r in result.recommendations)
    assert result.recommendations[0].event.id == "a"


def test_social_signal_lifts_friends_events(make_event):
    history = UserEventHistory(user_id="u1", friend_ids={"f1", "f2", "f3"})
    events = [
        make_event("alone", "music", km=2),
        make_event("friends", "art", km=2, attendee_ids={"f1", "f2", "f3"}),
    ]
    params = _params(limit=2, include_social=True)
    result = calculate_recommendations(events, create_default_preferences("u1"), history, params)
    assert result.recommendations[0].event.id == "friends"
    assert result.recommendations[0].signals[Signal.social] == 1.0


def test_nearest_saved_place_is_the_origin(make_event):
    prefs = create_default_preferences("u1").model_copy(update={
        "home_location": north_of(ORIGIN, 50),
        "favorite_locations": [ORIGIN],
    })
    params = RecommendationParams(user_id="u1", limit=1, now=NOW, include_trending=False)
    result = calculate_recommendations([make_event("a", km=1)], prefs, None, params)
    # 1 km from the favorite, 15 km default radius
    assert result.recommendations[0].signals[Signal.distance] == pytest.approx(1 - 1 / 30, abs=1e-4)


# ── Ties and serialization ───────────────────────────────────────────────


def test_equal_reported_scores_tie_break_by_id(make_event):
    events = [
        make_event("a", "music", km=None, hours=10.001),
        make_event("b", "art", km=None, hours=10.0),
    ]
    params = RecommendationParams(user_id="u1", limit=2, now=NOW, include_trending=False)
    result = calculate_recommendations(events, None, None, params)
    ranked = [(r.event.id, r.score) for r in result.recommendations]
    assert ranked[0][1] == ranked[1][1]
    assert [event_id for event_id, _ in ranked] == ["a", "b"]


def test_huge_attendee_count_is_scored(make_event):
    events = [make_event("big", attendee_count=2**64), make_event("small", "art", attendee_count=3)]
    result = calculate_recommendations(events, None, None, _params(limit=2, include_trending=True))
    big = next(r for r in result.recommendations if r.event.id == "big")
    assert big.signals[Signal.trending] == 1.0


def test_id_sets_serialize_sorted(make_event):
    event = make_event("a", tags={"zeta", "alpha", "mid"}, attendee_ids={"u9", "u1"})
    dumped = event.model_dump(mode="json")
    assert dumped["tags"] == ["alpha", "mid", "zeta"]
    assert dumped["attendee_ids"] == ["u1", "u9"]

    history = UserEventHistory(user_id="u1", attended_event_ids={"b", "a"}, friend_ids={"f2", "f1"})
    dumped = history.model_dump(mode="json")
    assert dumped["attended_event_ids"] == ["a", "b"]
    assert dumped["friend_ids"] == ["f1", "f2"]
