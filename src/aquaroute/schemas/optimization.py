"""Optimization request/response schemas."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

TOURNAMENT_SIZE = 3
ELITE_FRACTION = 0.1


class Hyperparameters(BaseModel):
    """Genetic-algorithm tuning sent to the optimizer. Immutable once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    population_size: int = Field(50, ge=20, le=200)
    max_generations: int = Field(100, ge=50, le=500)
    mutation_rate: float = Field(0.1, ge=0.01, le=0.5)
    crossover_rate: float = Field(0.8, ge=0.1, le=1.0)
    max_route_length: int = Field(8, ge=3, le=15, description="Maximum water points in a route.")
    time_limit: float = Field(60.0, gt=0, description="Algorithm-side time budget in seconds.")
    convergence_threshold: int = Field(15, ge=1)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def elite_size(self) -> int:
        # Half-up rounding: 25 -> 3, not banker's 2.
        return int(self.population_size * ELITE_FRACTION + 0.5)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def tournament_size(self) -> int:
        return TOURNAMENT_SIZE


PRESETS: Dict[str, Dict[str, Any]] = {
    "fast": {
        "population_size": 30,
        "max_generations": 50,
        "mutation_rate": 0.2,
        "crossover_rate": 0.7,
        "max_route_length": 5,
    },
    "balanced": {
        "population_size": 50,
        "max_generations": 100,
        "mutation_rate": 0.1,
        "crossover_rate": 0.8,
        "max_route_length": 8,
    },
    "quality": {
        "population_size": 100,
        "max_generations": 200,
        "mutation_rate": 0.05,
        "crossover_rate": 0.9,
        "max_route_length": 12,
    },
}


class GeoPointModel(BaseModel):
    latitude: float
    longitude: float


class CandidateModel(BaseModel):
    id: str
    location: GeoPointModel
    address: str = ""
    label: Optional[str] = None


class CreateSessionRequest(BaseModel):
    owner_id: str = Field(..., min_length=1, description="Administrator running the optimization.")


class OptimizeRequest(BaseModel):
    origin: Optional[GeoPointModel] = Field(default=None, description="Start location of the route.")
    preset: Optional[str] = Field(default=None, description="fast, balanced or quality.")
    parameters: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Hyperparameter overrides layered over the preset; validated as a whole.",
    )


class SessionErrorModel(BaseModel):
    category: str
    message: str
    detail: Optional[str] = None


class SessionSnapshot(BaseModel):
    session_id: str
    owner_id: str
    status: str
    request_sequence: int
    selected_ids: List[str]
    route: Optional[Dict[str, Any]] = None
    telemetry: Optional[Dict[str, Any]] = None
    error: Optional[SessionErrorModel] = None
