from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from eventrec.analytics.store import clear_events
from eventrec.recommendations import data_store
from eventrec.recommendations.models import Event, GeoPoint

NOW = datetime(2026, 3, 6, 18, 0, tzinfo=timezone.utc)
ORIGIN = GeoPoint(lat=40.4168, lng=-3.7038)
KM_PER_DEGREE_LAT = 111.19492664455873


def north_of(origin: GeoPoint, km: float) -> GeoPoint:
    return GeoPoint(lat=origin.lat + km / KM_PER_DEGREE_LAT, lng=origin.lng)


@pytest.fixture(autouse=True)
def _clean_state():
    data_store.clear_store()
    clear_events()
    yield
    data_store.clear_store()
    clear_events()


@pytest.fixture
def make_event():
    def _make(
        event_id: str,
        category: str = "music",
        km: float | None = 1.0,
        hours: float = 24.0,
        **extra,
    ) -> Event:
        location = north_of(ORIGIN, km) if km is not None else None
        return Event(
            id=event_id,
            title=extra.pop("title", f"Event {event_id}"),
            category=category,
            starts_at=NOW + timedelta(hours=hours),
            location=extra.pop("location", location),
            **extra,
        )

    return _make
