"""
Normalize backend trip, route, stop and log payloads into the domain model.

Every function here is pure: raw dicts in, schema objects out.
"""
import math
from datetime import datetime, timezone
from typing import Any, Optional

import pydantic

from eld_client.errors import MalformedPayloadError
from eld_client.schemas import LogSheet, RawRoute, RawStop, RouteData, RoutePoint

STOP_TYPES = ("rest", "fuel")
SECONDS_PER_HOUR = 3600

# The backend does not geolocate stops yet.
UNKNOWN_COORDINATES = (0.0, 0.0)


def _trip_field(trip: dict, name: str) -> str:
    nested = trip.get("trip")
    value = None
    if isinstance(nested, dict):
        value = nested.get(name)
    value = value or trip.get(name)
    if not value:
        raise MalformedPayloadError(f"trip payload has no {name}")
    return value


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def map_stop(raw: dict, now: Optional[datetime] = None) -> RoutePoint:
    """Convert one backend stop into a rest or fuel route point.

    A stop without a planned arrival is stamped with `now`.
    """
    try:
        stop = RawStop.model_validate(raw)
    except pydantic.ValidationError as e:
        raise MalformedPayloadError(f"invalid stop: {e}") from e

    kind = stop.type.lower()
    if kind not in STOP_TYPES:
        raise MalformedPayloadError(f"unknown stop type {stop.type!r}")

    return RoutePoint(
        type=kind,
        location=stop.location,
        coordinates=UNKNOWN_COORDINATES,
        time=stop.planned_arrival or now or datetime.now(timezone.utc),
        duration=stop.duration * 60 if stop.duration else None,
    )


def map_trip(
    route_data: dict,
    trip: dict,
    stops: list[dict],
    now: Optional[datetime] = None,
) -> RouteData:
    """
    Build the ordered route: pickup, every stop in backend order, dropoff.

    Distance is copied as-is. Duration arrives in seconds and is reported in
    whole hours, rounding halves up.
    """
    now = now or datetime.now(timezone.utc)
    try:
        route = RawRoute.model_validate(route_data)
    except pydantic.ValidationError as e:
        raise MalformedPayloadError(f"invalid route data: {e}") from e

    points = [
        RoutePoint(
            type="pickup",
            location=_trip_field(trip, "pickup_location"),
            coordinates=UNKNOWN_COORDINATES,
            time=now,
        )
    ]
    points.extend(map_stop(stop, now=now) for stop in stops)
    points.append(
        RoutePoint(
            type="dropoff",
            location=_trip_field(trip, "dropoff_location"),
            coordinates=UNKNOWN_COORDINATES,
            time=now,
        )
    )

    return RouteData(
        points=points,
        total_distance=route.distance,
        total_duration=_round_half_up(route.duration / SECONDS_PER_HOUR),
    )


def map_planned_trip(planned: dict, now: Optional[datetime] = None) -> Optional[RouteData]:
    """Map a plan endpoint payload. Returns None if it carries no route yet."""
    route_data = planned.get("route_data")
    if not route_data:
        return None
    return map_trip(route_data, planned, planned.get("stops") or [], now=now)


def route_summary(route: RouteData) -> dict[str, Any]:
    """Figures shown next to the route map."""
    return {
        "total_distance": route.total_distance,
        "total_duration": route.total_duration,
        "pickup_time": route.points[0].time,
        "dropoff_time": route.points[-1].time,
        "rest_stops": sum(1 for p in route.points if p.type == "rest"),
        "fuel_stops": sum(1 for p in route.points if p.type == "fuel"),
    }


def map_log_sheet(raw: dict) -> LogSheet:
    """Normalize one daily log payload."""
    try:
        return LogSheet.model_validate(raw)
    except pydantic.ValidationError as e:
        raise MalformedPayloadError(f"invalid log sheet: {e}") from e
