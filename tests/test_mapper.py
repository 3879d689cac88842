"""
Tests for route and log sheet normalization.
"""
from datetime import datetime, timezone

import pytest

from eld_client.errors import MalformedPayloadError, NetworkError
from eld_client.services.mapper import (
    map_log_sheet,
    map_planned_trip,
    map_stop,
    map_trip,
    route_summary,
)

NOW = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)

TRIP = {
    "id": 42,
    "current_location": "Joliet, IL",
    "pickup_location": "Chicago, IL",
    "dropoff_location": "Dallas, TX",
    "current_cycle_hours": 12,
}

ROUTE = {"distance": 925.4, "duration": 14 * 3600 + 600}


def stop(kind, location, duration=None, arrival="2025-03-01T14:00:00Z"):
    return {"type": kind, "location": location, "duration": duration, "planned_arrival": arrival}


class TestMapTrip:

    def test_chicago_to_dallas(self):
        stops = [
            stop("REST", "Springfield, IL", 0.5),
            stop("FUEL", "Tulsa, OK", 0.25, "2025-03-01T19:30:00Z"),
        ]

        route = map_trip(ROUTE, TRIP, stops, now=NOW)

        assert [(p.type, p.location) for p in route.points] == [
            ("pickup", "Chicago, IL"),
            ("rest", "Springfield, IL"),
            ("fuel", "Tulsa, OK"),
            ("dropoff", "Dallas, TX"),
        ]
        assert route.points[1].duration == 30
        assert route.points[2].duration == 15
        assert route.points[0].duration is None
        assert route.points[-1].duration is None
        assert route.points[2].time == datetime(2025, 3, 1, 19, 30, tzinfo=timezone.utc)
        assert route.points[0].time == NOW

    @pytest.mark.parametrize("count", [0, 1, 3, 12])
    def test_point_count_is_stops_plus_two(self, count):
        stops = [stop("rest" if i % 2 else "fuel", f"Stop {i}", 0.5) for i in range(count)]

        route = map_trip(ROUTE, TRIP, stops, now=NOW)

        assert len(route.points) == count + 2
        assert route.points[0].type == "pickup"
        assert route.points[-1].type == "dropoff"
        assert [p.location for p in route.points[1:-1]] == [f"Stop {i}" for i in range(count)]

    def test_totals(self):
        route = map_trip({"distance": 1234.5, "duration": 5400}, TRIP, [], now=NOW)
        assert route.total_distance == 1234.5
        # 1.5 h rounds up
        assert route.total_duration == 2

    @pytest.mark.parametrize("seconds,hours", [
        (0, 0),
        (1799, 0),
        (1800, 1),
        (9000, 3),  # 2.5 h rounds half up, not to even
        (36000, 10),
    ])
    def test_duration_rounds_half_up(self, seconds, hours):
        route = map_trip({"distance": 1, "duration": seconds}, TRIP, [], now=NOW)
        assert route.total_duration == hours

    def test_coordinates_default_to_origin(self):
        route = map_trip(ROUTE, TRIP, [stop("rest", "Springfield, IL", 0.5)], now=NOW)
        assert all(p.coordinates == (0.0, 0.0) for p in route.points)

    def test_nested_trip_payload(self):
        planned = {
            "trip": {"pickup_location": "Nested Pickup", "dropoff_location": "Nested Dropoff"},
            "pickup_location": "Top Pickup",
            "dropoff_location": "Top Dropoff",
        }
        route = map_trip(ROUTE, planned, [], now=NOW)
        assert route.points[0].location == "Nested Pickup"
        assert route.points[-1].location == "Nested Dropoff"

    def test_missing_location_is_malformed(self):
        with pytest.raises(MalformedPayloadError):
            map_trip(ROUTE, {"pickup_location": "Chicago, IL"}, [], now=NOW)

    def test_missing_route_fields_is_malformed(self):
        with pytest.raises(MalformedPayloadError):
            map_trip({"distance": 10}, TRIP, [], now=NOW)


class TestMapStop:

    def test_type_is_lowercased(self):
        assert map_stop(stop("Rest", "A", 10)).type == "rest"

    @pytest.mark.parametrize("duration", [None, 0])
    def test_no_duration(self, duration):
        assert map_stop(stop("fuel", "A", duration)).duration is None

    def test_unknown_type_is_malformed(self):
        with pytest.raises(MalformedPayloadError) as exc_info:
            map_stop(stop("Break", "A", 0.5))
        # Malformed payloads are a kind of network error
        assert isinstance(exc_info.value, NetworkError)

    def test_missing_arrival_defaults_to_now(self):
        point = map_stop({"type": "rest", "location": "A"})
        assert point.time.tzinfo is not None

    def test_missing_arrival_uses_injected_now(self):
        assert map_stop({"type": "rest", "location": "A"}, now=NOW).time == NOW

    def test_trip_passes_now_to_stops(self):
        stops = [stop("fuel", "Tulsa, OK", 0.25, arrival=None)]

        route = map_trip(ROUTE, TRIP, stops, now=NOW)

        assert [p.time for p in route.points] == [NOW, NOW, NOW]


class TestPlannedTrip:

    def test_maps_route_and_stops(self):
        planned = dict(TRIP, route_data=ROUTE, stops=[stop("rest", "Springfield, IL", 10)])
        route = map_planned_trip(planned, now=NOW)
        assert len(route.points) == 3
        assert route.total_duration == 14

    def test_no_route_data(self):
        assert map_planned_trip(dict(TRIP)) is None

    def test_summary(self):
        stops = [
            stop("rest", "A", 0.5),
            stop("fuel", "B", 0.25),
            stop("rest", "C", 10),
        ]
        summary = route_summary(map_trip(ROUTE, TRIP, stops, now=NOW))
        assert summary["rest_stops"] == 2
        assert summary["fuel_stops"] == 1
        assert summary["pickup_time"] == NOW
        assert summary["total_distance"] == 925.4


class TestMapLogSheet:

    def test_mixed_case_payload(self):
        raw = {
            "id": 7,
            "trip": 42,
            "date": "2025-03-01",
            "entries": [
                {"start": "00:00", "end": "06:00", "status": "Off Duty", "location": "Chicago, IL", "notes": ""},
                {"start": "06:00", "end": "17:00", "status": "Driving", "location": "I-55", "notes": "Pre-trip done"},
            ],
            "duty_status_changes": [
                {"id": 1, "status": "D", "status_display": "Driving", "start_time": "06:00",
                 "end_time": "17:00", "location": "I-55", "odometer": 120500},
                {"id": 2, "status": "OFF", "start_time": "17:00", "location": "Springfield, IL"},
            ],
            "drivingHours": 11,
            "onDutyHours": 1.5,
            "offDutyHours": 11.5,
            "sleeperHours": 0,
            "cycleRemaining": 45.5,
            "carrier_name": "Acme Freight",
            "starting_odometer": 120400,
            "total_miles": 640,
        }

        sheet = map_log_sheet(raw)

        assert sheet.id == 7
        assert sheet.trip == 42
        assert str(sheet.date) == "2025-03-01"
        assert [e.status for e in sheet.entries] == ["Off Duty", "Driving"]
        assert sheet.entries[1].notes == "Pre-trip done"
        assert [c.label for c in sheet.duty_status_changes] == ["Driving", "OFF"]
        assert sheet.duty_status_changes[0].odometer == 120500
        assert sheet.driving_hours == 11
        assert sheet.cycle_remaining == 45.5
        assert sheet.carrier_name == "Acme Freight"
        assert sheet.carrier_address is None
        assert sheet.total_miles == 640

    def test_snake_case_summary(self):
        sheet = map_log_sheet({"id": 1, "driving_hours": 8, "sleeper_hours": 2})
        assert sheet.driving_hours == 8
        assert sheet.sleeper_hours == 2
        assert sheet.entries == []

    def test_missing_id_is_malformed(self):
        with pytest.raises(MalformedPayloadError):
            map_log_sheet({"date": "2025-03-01"})
