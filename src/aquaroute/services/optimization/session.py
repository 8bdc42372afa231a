"""Optimization session states and the transitions allowed between them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...models.domain import OptimizationTelemetry, Route
from .errors import ErrorCategory


class SessionStatus(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    REQUESTING = "requesting"
    RECONCILING = "reconciling"
    READY = "ready"
    ERROR = "error"


_ALL = frozenset(SessionStatus)

# optimize() may start from any state: a call issued while another is in
# flight supersedes it. Selection mutations force IDLE from anywhere.
ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.IDLE: frozenset({SessionStatus.IDLE, SessionStatus.VALIDATING}),
    SessionStatus.VALIDATING: _ALL - {SessionStatus.RECONCILING, SessionStatus.READY},
    SessionStatus.REQUESTING: _ALL - {SessionStatus.READY},
    SessionStatus.RECONCILING: frozenset(
        {SessionStatus.IDLE, SessionStatus.VALIDATING, SessionStatus.READY, SessionStatus.ERROR}
    ),
    SessionStatus.READY: frozenset({SessionStatus.IDLE, SessionStatus.VALIDATING}),
    SessionStatus.ERROR: frozenset({SessionStatus.IDLE, SessionStatus.VALIDATING}),
}


class InvalidTransition(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class SessionState:
    """Immutable snapshot of a session; ``route`` and ``telemetry`` always come from the same run."""

    status: SessionStatus = SessionStatus.IDLE
    request_sequence: int = 0
    route: Optional[Route] = None
    telemetry: Optional[OptimizationTelemetry] = None
    error: Optional[ErrorCategory] = None
    detail: Optional[str] = None

    @property
    def is_busy(self) -> bool:
        return self.status in (SessionStatus.VALIDATING, SessionStatus.REQUESTING, SessionStatus.RECONCILING)

    def transition(
        self,
        status: SessionStatus,
        *,
        request_sequence: Optional[int] = None,
        route: Optional[Route] = None,
        telemetry: Optional[OptimizationTelemetry] = None,
        error: Optional[ErrorCategory] = None,
        detail: Optional[str] = None,
    ) -> "SessionState":
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransition(f"{self.status.value} -> {status.value} is not allowed")
        if status is SessionStatus.READY and route is None:
            raise InvalidTransition("ready state requires a route")
        if status is SessionStatus.ERROR and error is None:
            raise InvalidTransition("error state requires a category")
        return SessionState(
            status=status,
            request_sequence=self.request_sequence if request_sequence is None else request_sequence,
            route=route if status is SessionStatus.READY else None,
            telemetry=telemetry if status is SessionStatus.READY else None,
            error=error if status is SessionStatus.ERROR else None,
            detail=detail if status is SessionStatus.ERROR else None,
        )
