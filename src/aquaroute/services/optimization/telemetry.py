"""Best-effort extraction of optimizer run statistics."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Optional, Sequence

from ...models.domain import OptimizationTelemetry
from .coercion import parse_float

logger = logging.getLogger(__name__)

FLAT_SERIES_LEVEL = 0.5


def _optional_int(value: Any) -> Optional[int]:
    parsed = parse_float(value)
    return int(parsed) if parsed is not None else None


def _history(value: Any) -> tuple[float, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    parsed = (parse_float(item) for item in value)
    return tuple(item for item in parsed if item is not None)


def extract_telemetry(raw: Any) -> Optional[OptimizationTelemetry]:
    """Read fitness and generation statistics from a raw optimizer response.

    Looks at ``optimization_stats`` first, then ``algorithm_details`` and
    finally a bare ``fitness_score``. Returns ``None`` when none of them is
    present; never raises.
    """
    try:
        return _extract(raw)
    except Exception as exc:
        logger.warning(f"Ignoring unreadable optimizer telemetry: {exc!r}")
        return None


def _extract(raw: Any) -> Optional[OptimizationTelemetry]:
    if not isinstance(raw, Mapping):
        return None

    found = False
    values: dict[str, Any] = {}

    stats = raw.get("optimization_stats")
    if isinstance(stats, Mapping):
        found = True
        values["best_fitness"] = parse_float(stats.get("best_fitness"))
        values["average_fitness"] = parse_float(stats.get("average_fitness"))
        values["generations_completed"] = _optional_int(stats.get("generations_completed"))
        values["fitness_history"] = _history(stats.get("fitness_history"))

    details = raw.get("algorithm_details")
    if isinstance(details, Mapping):
        found = True
        if values.get("generations_completed") is None:
            values["generations_completed"] = _optional_int(details.get("generations_completed"))
        values["population_size"] = _optional_int(details.get("population_size"))
        values["evaluations_performed"] = _optional_int(details.get("evaluations_performed"))
        status = details.get("convergence_status")
        values["convergence_status"] = str(status) if status is not None else None

    if "fitness_score" in raw:
        found = True
        if values.get("best_fitness") is None:
            values["best_fitness"] = parse_float(raw.get("fitness_score"))

    if not found:
        return None
    return OptimizationTelemetry(**values)


def normalize_series(history: Sequence[float]) -> list[float]:
    """Scale a fitness history into 0..1 using its own min and max.

    An empty history yields an empty series; a zero-range history (all
    values equal) yields a flat series at ``FLAT_SERIES_LEVEL``.
    """
    if not history:
        return []
    low = min(history)
    high = max(history)
    if high <= low:
        return [FLAT_SERIES_LEVEL] * len(history)
    span = high - low
    if not math.isfinite(span):
        # Halve everything so extreme magnitudes do not overflow.
        return [(value / 2 - low / 2) / (high / 2 - low / 2) for value in history]
    return [(value - low) / span for value in history]
