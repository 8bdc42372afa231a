"""Field coercion helpers for untyped optimizer payloads.

Two families live here. ``strict_*`` helpers accept a value only when it
already has the expected shape and raise ``StrictDecodeError`` otherwise.
``coerce_*`` helpers never raise: anything unusable becomes the field's
documented default.
"""

from __future__ import annotations

import math
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

from ...models.domain import ORIGIN, GeoPoint, RoutePoint, RouteSegment

MISSING = object()

LATITUDE_KEYS = ("latitude", "lat")
LONGITUDE_KEYS = ("longitude", "lng", "lon")
NODE_ID_KEYS = ("nodeId", "node_id", "id")
OWNER_KEYS = ("ownerId", "owner_id", "adminId", "admin_id")
CANDIDATE_ID_KEYS = ("candidateIds", "candidate_ids", "reportIds", "report_ids")
DISTANCE_KEYS = ("totalDistance", "total_distance")
CREATED_AT_KEYS = ("createdAt", "created_at")
UPDATED_AT_KEYS = ("updatedAt", "updated_at")


class StrictDecodeError(ValueError):
    """A field is absent or has the wrong shape for strict decoding."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def lookup(data: Mapping, keys: Sequence[str]) -> Any:
    """Return the first non-null value among key variants, or ``MISSING``."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return MISSING


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_float(value: Any) -> Optional[float]:
    """Best-effort numeric parse; returns None for anything unusable."""
    if _is_number(value):
        try:
            result = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            result = float(value.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    return result if math.isfinite(result) else None


def coerce_distance(value: Any, default: float = 0.0) -> float:
    parsed = parse_float(value)
    if parsed is None or parsed < 0:
        return default
    return parsed


def coerce_text(value: Any, default: str = "") -> str:
    if value is None or value is MISSING:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def coerce_optional_text(value: Any) -> Optional[str]:
    text = coerce_text(value, default="")
    return text or None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept ISO-8601 strings, epoch-millisecond integers or datetimes."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def coerce_timestamp(value: Any, now: Callable[[], datetime] = utcnow) -> datetime:
    parsed = parse_timestamp(value)
    return parsed if parsed is not None else now()


def coerce_geopoint(value: Any) -> GeoPoint:
    """Missing or non-numeric coordinates collapse the point to {0, 0}."""
    if not isinstance(value, Mapping):
        return ORIGIN
    latitude = parse_float(lookup(value, LATITUDE_KEYS))
    longitude = parse_float(lookup(value, LONGITUDE_KEYS))
    if latitude is None or longitude is None:
        return ORIGIN
    return GeoPoint(latitude=latitude, longitude=longitude)


def coerce_route_point(value: Any) -> RoutePoint:
    if not isinstance(value, Mapping):
        return RoutePoint()
    return RoutePoint(
        node_id=coerce_text(lookup(value, NODE_ID_KEYS)),
        location=coerce_geopoint(value.get("location")),
        address=coerce_text(value.get("address")),
        label=coerce_optional_text(value.get("label")),
    )


def coerce_route_segment(value: Any) -> RouteSegment:
    if not isinstance(value, Mapping):
        return RouteSegment()
    polyline = value.get("polyline")
    return RouteSegment(
        from_point=coerce_route_point(value.get("from")),
        to_point=coerce_route_point(value.get("to")),
        distance=coerce_distance(value.get("distance")),
        polyline=tuple(coerce_geopoint(item) for item in polyline) if isinstance(polyline, list) else (),
    )


def strict_text(value: Any, name: str, *, allow_empty: bool = True) -> str:
    if not isinstance(value, str):
        raise StrictDecodeError(f"{name} must be a string, got {type(value).__name__}")
    if not allow_empty and not value:
        raise StrictDecodeError(f"{name} must not be empty")
    return value


def strict_optional_text(value: Any, name: str) -> Optional[str]:
    return None if value is None else strict_text(value, name)


def strict_number(value: Any, name: str) -> float:
    parsed = parse_float(value) if _is_number(value) else None
    if parsed is None or parsed < 0:
        raise StrictDecodeError(f"{name} must be a finite non-negative number, got {value!r}")
    return parsed


def strict_coordinate(value: Any, name: str) -> float:
    parsed = parse_float(value) if _is_number(value) else None
    if parsed is None:
        raise StrictDecodeError(f"{name} must be a finite number, got {value!r}")
    return parsed


def strict_timestamp(value: Any, name: str) -> datetime:
    parsed = parse_timestamp(value)
    if parsed is None:
        raise StrictDecodeError(f"{name} is not a recognized timestamp: {value!r}")
    return parsed


def strict_mapping(value: Any, name: str) -> Mapping:
    if not isinstance(value, Mapping):
        raise StrictDecodeError(f"{name} must be an object, got {type(value).__name__}")
    return value


def strict_list(value: Any, name: str) -> list:
    if not isinstance(value, list):
        raise StrictDecodeError(f"{name} must be a list, got {type(value).__name__}")
    return value


def strict_geopoint(value: Any, name: str) -> GeoPoint:
    data = strict_mapping(value, name)
    return GeoPoint(
        latitude=strict_coordinate(lookup(data, LATITUDE_KEYS), f"{name}.latitude"),
        longitude=strict_coordinate(lookup(data, LONGITUDE_KEYS), f"{name}.longitude"),
    )


def strict_route_point(value: Any, name: str) -> RoutePoint:
    data = strict_mapping(value, name)
    return RoutePoint(
        node_id=strict_text(lookup(data, NODE_ID_KEYS), f"{name}.nodeId"),
        location=strict_geopoint(data.get("location"), f"{name}.location"),
        address=strict_text(data.get("address"), f"{name}.address"),
        label=strict_optional_text(data.get("label"), f"{name}.label"),
    )


def strict_route_segment(value: Any, name: str) -> RouteSegment:
    data = strict_mapping(value, name)
    polyline = strict_list(data.get("polyline"), f"{name}.polyline")
    return RouteSegment(
        from_point=strict_route_point(data.get("from"), f"{name}.from"),
        to_point=strict_route_point(data.get("to"), f"{name}.to"),
        distance=strict_number(data.get("distance"), f"{name}.distance"),
        polyline=tuple(strict_geopoint(item, f"{name}.polyline[{i}]") for i, item in enumerate(polyline)),
    )
