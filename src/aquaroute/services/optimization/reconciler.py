"""Turn raw optimizer responses into canonical routes.

``ResponseReconciler.reconcile`` is total: whatever the optimizer sends back
(missing fields, wrong types, key variants, a list instead of an object,
``None``) it returns a valid ``Route`` and never raises. Decoding is tried in
three tiers, each a strictly weaker fallback than the previous one:

1. strict   - every field present and well-formed; built as-is.
2. lenient  - absent or unusable fields take generated defaults and each
              point/segment is decoded on its own.
3. minimal  - only the selection, the total distance and empty geometry;
              used when the payload cannot be read as an object at all.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Sequence

from ...models.domain import Route
from .coercion import (
    CANDIDATE_ID_KEYS,
    CREATED_AT_KEYS,
    DISTANCE_KEYS,
    MISSING,
    OWNER_KEYS,
    UPDATED_AT_KEYS,
    StrictDecodeError,
    coerce_distance,
    coerce_route_point,
    coerce_route_segment,
    coerce_text,
    coerce_timestamp,
    epoch_millis,
    lookup,
    strict_list,
    strict_number,
    strict_route_point,
    strict_route_segment,
    strict_text,
    strict_timestamp,
    utcnow,
)

logger = logging.getLogger(__name__)


class ReconciliationTier(str, Enum):
    STRICT = "strict"
    LENIENT = "lenient"
    MINIMAL = "minimal"


@dataclass(frozen=True, slots=True)
class ReconciliationContext:
    """Session facts the reconciler falls back on."""

    owner_id: str
    selection_ids: tuple[str, ...]
    clock: Callable[[], datetime] = field(default=utcnow)
    id_clock: Callable[[], int] = field(default=epoch_millis)

    def __post_init__(self) -> None:
        if not self.owner_id:
            raise ValueError("ReconciliationContext requires a non-empty owner_id.")

    def generate_id(self, prefix: str) -> str:
        return f"{prefix}-{self.id_clock()}"


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    route: Route
    tier: ReconciliationTier


class ResponseReconciler:
    def reconcile(self, raw: Any, context: ReconciliationContext) -> Route:
        return self.reconcile_with_tier(raw, context).route

    def reconcile_with_tier(self, raw: Any, context: ReconciliationContext) -> ReconciliationResult:
        try:
            route = self._decode_strict(raw, context)
            logger.debug(f"Optimizer response decoded strictly (route {route.id})")
            return ReconciliationResult(route, ReconciliationTier.STRICT)
        except StrictDecodeError as exc:
            logger.debug(f"Strict decoding rejected optimizer response: {exc}")
        except Exception as exc:
            logger.warning(f"Strict decoding failed unexpectedly: {exc!r}")

        try:
            route = self._decode_lenient(raw, context)
            logger.info(f"Optimizer response reconciled with defaults (route {route.id})")
            return ReconciliationResult(route, ReconciliationTier.LENIENT)
        except Exception as exc:
            logger.warning(f"Lenient decoding failed ({exc!r}); building minimal route from selection")

        return ReconciliationResult(self._decode_minimal(raw, context), ReconciliationTier.MINIMAL)

    def _decode_strict(self, raw: Any, context: ReconciliationContext) -> Route:
        if not isinstance(raw, Mapping):
            raise StrictDecodeError(f"response must be an object, got {type(raw).__name__}")

        candidate_ids = strict_list(lookup(raw, CANDIDATE_ID_KEYS), "candidateIds")
        selection = set(context.selection_ids)
        for candidate_id in candidate_ids:
            strict_text(candidate_id, "candidateIds[]")
            if candidate_id not in selection:
                raise StrictDecodeError(f"candidate '{candidate_id}' is not part of the selection")

        points = strict_list(raw.get("points"), "points")
        segments = strict_list(raw.get("segments"), "segments")
        return Route(
            id=strict_text(raw.get("id"), "id", allow_empty=False),
            owner_id=strict_text(lookup(raw, OWNER_KEYS), "ownerId", allow_empty=False),
            candidate_ids=tuple(candidate_ids),
            points=tuple(strict_route_point(item, f"points[{i}]") for i, item in enumerate(points)),
            segments=tuple(strict_route_segment(item, f"segments[{i}]") for i, item in enumerate(segments)),
            total_distance=strict_number(lookup(raw, DISTANCE_KEYS), "totalDistance"),
            created_at=strict_timestamp(lookup(raw, CREATED_AT_KEYS), "createdAt"),
            updated_at=strict_timestamp(lookup(raw, UPDATED_AT_KEYS), "updatedAt"),
        )

    def _decode_lenient(self, raw: Any, context: ReconciliationContext) -> Route:
        if not isinstance(raw, Mapping):
            raise TypeError(f"response must be an object, got {type(raw).__name__}")

        points = raw.get("points")
        segments = raw.get("segments")
        return Route(
            id=coerce_text(raw.get("id")) or context.generate_id("route"),
            owner_id=coerce_text(lookup(raw, OWNER_KEYS)) or context.owner_id,
            candidate_ids=self._lenient_candidate_ids(lookup(raw, CANDIDATE_ID_KEYS), context.selection_ids),
            points=tuple(coerce_route_point(item) for item in points) if isinstance(points, list) else (),
            segments=tuple(coerce_route_segment(item) for item in segments) if isinstance(segments, list) else (),
            total_distance=coerce_distance(lookup(raw, DISTANCE_KEYS)),
            created_at=coerce_timestamp(lookup(raw, CREATED_AT_KEYS), context.clock),
            updated_at=coerce_timestamp(lookup(raw, UPDATED_AT_KEYS), context.clock),
        )

    @staticmethod
    def _lenient_candidate_ids(value: Any, selection_ids: Sequence[str]) -> tuple[str, ...]:
        if value is MISSING or not isinstance(value, list):
            return tuple(selection_ids)
        selection = set(selection_ids)
        kept: list[str] = []
        for item in value:
            candidate_id = coerce_text(item)
            if candidate_id in selection and candidate_id not in kept:
                kept.append(candidate_id)
        if value and not kept:
            logger.warning("Optimizer returned candidate ids outside the selection; using the selection instead")
            return tuple(selection_ids)
        return tuple(kept)

    def _decode_minimal(self, raw: Any, context: ReconciliationContext) -> Route:
        total_distance = 0.0
        if isinstance(raw, Mapping):
            for key in DISTANCE_KEYS:
                try:
                    if key in raw:
                        total_distance = coerce_distance(raw[key])
                        break
                except Exception as exc:
                    logger.debug(f"Could not read '{key}' from optimizer response: {exc!r}")
        try:
            now = context.clock()
        except Exception:
            now = utcnow()
        return Route(
            id=context.generate_id("fallback"),
            owner_id=context.owner_id,
            candidate_ids=tuple(context.selection_ids),
            points=(),
            segments=(),
            total_distance=total_distance,
            created_at=now,
            updated_at=now,
        )
