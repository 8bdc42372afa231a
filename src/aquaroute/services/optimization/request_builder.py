"""Validation and assembly of optimizer requests."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from ...config import settings
from ...models.domain import CandidatePoint, GeoPoint
from ...schemas.optimization import PRESETS, Hyperparameters
from .coercion import coerce_geopoint
from .errors import (
    ConstraintViolation,
    EmptySelection,
    HyperparameterOutOfRange,
    MissingOrigin,
    MissingOwner,
    UnknownPreset,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OptimizationRequest:
    """Everything the optimizer needs for one run. Built once, never mutated."""

    candidates: tuple[CandidatePoint, ...]
    origin: GeoPoint
    owner_id: str
    params: Hyperparameters

    @property
    def candidate_ids(self) -> tuple[str, ...]:
        return tuple(candidate.id for candidate in self.candidates)

    def to_payload(self) -> dict[str, Any]:
        """Wire format for the optimization service."""
        return {
            "owner_id": self.owner_id,
            "admin_id": self.owner_id,
            "current_location": self.origin.to_dict(),
            "candidates": [
                {
                    "id": candidate.id,
                    "latitude": candidate.location.latitude,
                    "longitude": candidate.location.longitude,
                    "address": candidate.address,
                }
                for candidate in self.candidates
            ],
            "ga_parameters": self.params.model_dump(),
            "max_hops": self.params.max_route_length,
            "optimization_method": "genetic",
        }


def resolve_hyperparameters(
    parameters: Optional[Mapping[str, Any] | Hyperparameters] = None,
    preset: Optional[str] = None,
) -> Hyperparameters:
    """Layer explicit overrides over a preset and validate the result.

    Out-of-range values are rejected, never clamped.
    """
    if isinstance(parameters, Hyperparameters):
        # model_construct() skips validation.
        return _validate(parameters.model_dump(exclude={"elite_size", "tournament_size"}))

    preset_name = (preset or settings.default_preset).strip().lower()
    if preset_name not in PRESETS:
        raise UnknownPreset(preset or "", sorted(PRESETS))

    merged: dict[str, Any] = {
        "time_limit": settings.default_time_limit_seconds,
        "convergence_threshold": settings.default_convergence_threshold,
        **PRESETS[preset_name],
    }
    if parameters:
        # Derived values are recomputed, not taken from input.
        merged.update({k: v for k, v in parameters.items() if k not in ("elite_size", "tournament_size")})

    return _validate(merged)


def _validate(values: dict[str, Any]) -> Hyperparameters:
    try:
        return Hyperparameters.model_validate(values)
    except PydanticValidationError as exc:
        violations = [
            ConstraintViolation(
                field=".".join(str(part) for part in error["loc"]) or "parameters",
                value=error.get("input"),
                constraint=error["msg"],
            )
            for error in exc.errors()
        ]
        raise HyperparameterOutOfRange(violations) from exc


def _coerce_origin(origin: Any) -> Optional[GeoPoint]:
    """Missing origin stays None; malformed coordinates collapse to {0, 0}."""
    if origin is None or isinstance(origin, GeoPoint):
        return origin
    if isinstance(origin, Mapping):
        return coerce_geopoint(origin)
    if isinstance(origin, (list, tuple)) and len(origin) == 2:
        return coerce_geopoint({"latitude": origin[0], "longitude": origin[1]})
    return None


class RequestBuilder:
    """Fail fast on anything that would make the optimizer call pointless."""

    def build(
        self,
        *,
        selection: Sequence[CandidatePoint],
        origin: Any,
        owner_id: str,
        parameters: Optional[Mapping[str, Any] | Hyperparameters] = None,
        preset: Optional[str] = None,
    ) -> OptimizationRequest:
        if not selection:
            raise EmptySelection()
        resolved_origin = _coerce_origin(origin)
        if resolved_origin is None:
            raise MissingOrigin()
        if not owner_id or not owner_id.strip():
            raise MissingOwner()

        params = resolve_hyperparameters(parameters, preset)
        request = OptimizationRequest(
            candidates=tuple(selection),
            origin=resolved_origin,
            owner_id=owner_id,
            params=params,
        )
        logger.debug(
            f"Built optimization request: {len(request.candidates)} candidates, "
            f"population={params.population_size}, generations={params.max_generations}, "
            f"mutation={params.mutation_rate}, crossover={params.crossover_rate}, "
            f"max_points={params.max_route_length}, time_limit={params.time_limit}"
        )
        return request
