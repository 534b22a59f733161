from __future__ import annotations

import pytest

from wandersync.exceptions import MalformedRemoteDataError
from wandersync.models.trip import EventCategory, TripDocument
from wandersync.models.weather import WeatherReport


def _wire() -> dict[str, object]:
    return {
        "id": "shared-trip-2026",
        "name": "Japan",
        "destination": "Tokyo",
        "startDate": "2026-04-01",
        "endDate": "2026-04-10",
        "participants": ["Alex", "Sam"],
        "events": [
            {"id": "e2", "title": "Dinner", "category": "DINING", "startTime": "2026-04-01T19:00", "isCompleted": False},
            {"id": "e1", "title": "Temple", "category": "sightseeing", "startTime": "2026-04-01T09:00"},
            {"id": "e3", "title": "Train", "category": "TELEPORT", "startTime": "2026-04-02T08:00"},
        ],
        "flights": [{"id": "f1", "flightNo": "NH204", "departure": "FRA", "arrival": "HND"}],
        "otherTransport": [],
        "accommodations": [{"id": "a1", "name": "Ryokan", "startDate": "2026-04-01", "endDate": "2026-04-03"}],
        "expenses": [
            {"id": "x1", "description": "Rail pass", "amount": 250.5},
            {"id": "x2", "description": "Sushi", "amount": 49.5},
        ],
        "budget": 4000,
        "headerImage": None,
        "tripNotes": "Bring adapters",
        "lastSynced": "2026-03-30T12:00:00.000Z",
        "someFutureField": {"ignored": True},
    }


def test_wire_payload_maps_to_snake_case_fields() -> None:
    doc = TripDocument.from_wire(_wire())

    assert doc is not None
    assert doc.start_date == "2026-04-01"
    assert doc.flights[0].flight_no == "NH204"
    assert doc.trip_notes == "Bring adapters"
    assert doc.header_image is None
    assert doc.header_image_position == 50
    assert doc.last_synced == "2026-03-30T12:00:00.000Z"


def test_to_wire_uses_camel_case_and_omits_unset_optionals() -> None:
    doc = TripDocument.from_wire(_wire())
    assert doc is not None

    wire = doc.to_wire()

    assert wire["lastSynced"] == "2026-03-30T12:00:00.000Z"
    assert wire["otherTransport"] == []
    assert "headerImage" not in wire
    assert "someFutureField" not in wire
    assert TripDocument.from_wire(wire) == doc


def test_unknown_and_lowercase_categories_are_normalized() -> None:
    doc = TripDocument.from_wire(_wire())
    assert doc is not None

    categories = [event.category for event in doc.events]

    assert categories == [EventCategory.DINING, EventCategory.SIGHTSEEING, EventCategory.NOTE]


def test_payload_without_identity_is_absent() -> None:
    assert TripDocument.from_wire({"name": "orphan"}) is None
    assert TripDocument.from_wire({"id": "  "}) is None
    assert TripDocument.from_wire(["not", "a", "dict"]) is None


def test_identified_but_invalid_payload_is_malformed() -> None:
    with pytest.raises(MalformedRemoteDataError):
        TripDocument.from_wire({"id": "t1", "budget": "a lot"})


def test_totals_and_day_view() -> None:
    doc = TripDocument.from_wire(_wire())
    assert doc is not None

    assert doc.total_spent == pytest.approx(300.0)
    assert [event.id for event in doc.events_on("2026-04-01")] == ["e1", "e2"]


def test_stamped_returns_copy() -> None:
    doc = TripDocument.default()

    stamped = doc.stamped("2026-01-01T00:00:00.000Z")

    assert doc.last_synced is None
    assert stamped.last_synced == "2026-01-01T00:00:00.000Z"
    assert stamped.model_copy(update={"last_synced": None}) == doc


def test_weather_report_from_openweather() -> None:
    report = WeatherReport.from_openweather({"main": {"temp": 18.4}, "weather": [{"main": "Clouds"}]})

    assert report == WeatherReport(temp=18.4, condition="Clouds")
    assert WeatherReport.from_openweather({"cod": "404"}) is None
