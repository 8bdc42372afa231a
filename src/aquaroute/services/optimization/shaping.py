"""Give legacy optimizer answers a route shape.

The genetic endpoint of the legacy backend answers with a single
``destination_point`` and the nearest-points endpoint with a ranked
``nearest_points`` list. Neither carries ``points``/``segments``, so both are
expanded into a start point, a destination point and one segment before
reconciliation. Payloads that already carry geometry are left untouched.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Optional

from ...models.domain import GeoPoint
from .coercion import (
    DISTANCE_KEYS,
    LATITUDE_KEYS,
    MISSING,
    coerce_distance,
    coerce_geopoint,
    coerce_text,
    lookup,
    parse_float,
)
from .errors import NO_ROUTES_MESSAGE, OptimizerRejected

EARTH_RADIUS_KM = 6371.0

START_NODE_ID = "start"
DESTINATION_NODE_ID = "ga-destination"
NEAREST_NODE_ID = "supply-closest"


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def _location_of(point: Mapping) -> GeoPoint:
    if lookup(point, LATITUDE_KEYS) is MISSING and isinstance(point.get("location"), Mapping):
        return coerce_geopoint(point["location"])
    return coerce_geopoint(point)


def _with_leg(
    payload: Mapping,
    origin: GeoPoint,
    destination: Mapping,
    *,
    node_id: str,
    label: str,
    distance: float,
) -> dict[str, Any]:
    location = _location_of(destination)
    start = {"nodeId": START_NODE_ID, "location": origin.to_dict(), "address": "Current Location", "label": "Start"}
    stop = {
        "nodeId": node_id,
        "location": location.to_dict(),
        "address": coerce_text(destination.get("address") or destination.get("name")) or "Water Supply Point",
        "label": label,
    }
    segment = {
        "from": start,
        "to": stop,
        "distance": distance,
        "polyline": [origin.to_dict(), location.to_dict()],
    }
    return {**payload, "points": [start, stop], "segments": [segment]}


def _closest(nearest: list) -> Optional[Mapping]:
    return next((item for item in nearest if isinstance(item, Mapping)), None)


def shape_route(payload: Any, origin: GeoPoint) -> Any:
    if not isinstance(payload, Mapping) or "points" in payload or "segments" in payload:
        return payload

    destination = payload.get("destination_point")
    if isinstance(destination, Mapping):
        return _with_leg(
            payload,
            origin,
            destination,
            node_id=DESTINATION_NODE_ID,
            label="Water Supply",
            distance=coerce_distance(lookup(payload, DISTANCE_KEYS)),
        )

    nearest = payload.get("nearest_points")
    if isinstance(nearest, list):
        closest = _closest(nearest)
        if closest is None:
            raise OptimizerRejected(str(payload.get("message") or NO_ROUTES_MESSAGE))
        location = _location_of(closest)
        distance = parse_float(closest.get("distance_km"))
        if distance is None or distance < 0:
            distance = haversine_km(origin.latitude, origin.longitude, location.latitude, location.longitude)
        shaped = _with_leg(
            payload,
            origin,
            closest,
            node_id=NEAREST_NODE_ID,
            label="Closest Water Supply",
            distance=distance,
        )
        if lookup(payload, DISTANCE_KEYS) is MISSING:
            shaped["totalDistance"] = distance
        return shaped

    return payload
