"""Contracts for the collaborators an optimization session depends on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Protocol, Sequence

from ...models.domain import CandidatePoint, OptimizationTelemetry, Route

if TYPE_CHECKING:
    from .request_builder import OptimizationRequest


class OptimizerGateway(Protocol):
    """Sends a request to the external optimizer and returns its raw, untrusted answer."""

    def optimize(self, request: "OptimizationRequest") -> Any:
        ...


ConnectivityProbe = Callable[[], bool]


class RouteRepository(Protocol):
    def save(self, route: Route, telemetry: OptimizationTelemetry | None = None) -> None:
        ...


class CandidateSource(Protocol):
    def list_candidates(self) -> Sequence[CandidatePoint]:
        ...
