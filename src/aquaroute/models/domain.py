"""Domain models for candidate water points, routes and optimizer telemetry."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class GeoPoint:
    latitude: float = 0.0
    longitude: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


ORIGIN = GeoPoint(0.0, 0.0)


@dataclass(frozen=True, slots=True)
class CandidatePoint:
    """A reportable water-quality location eligible for inclusion in a route."""

    id: str
    location: GeoPoint
    address: str = ""
    label: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RoutePoint:
    node_id: str = ""
    location: GeoPoint = ORIGIN
    address: str = ""
    label: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "location": self.location.to_dict(),
            "address": self.address,
            "label": self.label,
        }


@dataclass(frozen=True, slots=True)
class RouteSegment:
    from_point: RoutePoint = field(default_factory=RoutePoint)
    to_point: RoutePoint = field(default_factory=RoutePoint)
    distance: float = 0.0
    polyline: tuple[GeoPoint, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_point.to_dict(),
            "to": self.to_point.to_dict(),
            "distance": self.distance,
            "polyline": [point.to_dict() for point in self.polyline],
        }


@dataclass(frozen=True, slots=True)
class Route:
    """Canonical, fully populated route produced by reconciliation.

    ``points`` and ``segments`` may be empty but are never ``None``;
    ``total_distance`` is never negative.
    """

    id: str
    owner_id: str
    candidate_ids: tuple[str, ...]
    points: tuple[RoutePoint, ...]
    segments: tuple[RouteSegment, ...]
    total_distance: float
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the optimizer's response shape."""
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "candidateIds": list(self.candidate_ids),
            "points": [point.to_dict() for point in self.points],
            "segments": [segment.to_dict() for segment in self.segments],
            "totalDistance": self.total_distance,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class OptimizationTelemetry:
    """Statistics describing an optimizer run; purely informational."""

    best_fitness: Optional[float] = None
    average_fitness: Optional[float] = None
    generations_completed: Optional[int] = None
    fitness_history: tuple[float, ...] = ()
    population_size: Optional[int] = None
    evaluations_performed: Optional[int] = None
    convergence_status: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "best_fitness": self.best_fitness,
            "average_fitness": self.average_fitness,
            "generations_completed": self.generations_completed,
            "fitness_history": list(self.fitness_history),
            "population_size": self.population_size,
            "evaluations_performed": self.evaluations_performed,
            "convergence_status": self.convergence_status,
        }
