"""Optimization session orchestration.

One controller per user session. ``optimize`` walks the session through
VALIDATING -> REQUESTING -> RECONCILING -> READY (or ERROR). Every call takes
a new ``request_sequence``; results are applied only while that sequence is
still the active one. A newer ``optimize`` call or any selection mutation
retires the active sequence, so late answers are discarded silently.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, Callable, Iterable, Optional

from ...models.domain import CandidatePoint
from ...schemas.optimization import Hyperparameters
from .base import ConnectivityProbe, OptimizerGateway, RouteRepository
from .errors import ErrorCategory, ValidationError, translate_error
from .reconciler import ReconciliationContext, ResponseReconciler
from .request_builder import RequestBuilder
from .selection import SelectionStateStore
from .session import SessionState, SessionStatus
from .telemetry import extract_telemetry

StateListener = Callable[[SessionState], None]


class OptimizationSessionController:
    def __init__(
        self,
        owner_id: str,
        optimizer: OptimizerGateway,
        candidates: Iterable[CandidatePoint] = (),
        *,
        probe: Optional[ConnectivityProbe] = None,
        repository: Optional[RouteRepository] = None,
        builder: Optional[RequestBuilder] = None,
        reconciler: Optional[ResponseReconciler] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not owner_id:
            raise ValueError("An optimization session requires an owner id.")
        self.owner_id = owner_id
        self.optimizer = optimizer
        self.probe = probe
        self.repository = repository
        self.builder = builder or RequestBuilder()
        self.reconciler = reconciler or ResponseReconciler()
        self.logger = logger or logging.getLogger(__name__)

        self._lock = threading.RLock()
        self._state = SessionState()
        self._sequence = 0
        self._active_sequence: Optional[int] = None
        self._listeners: list[StateListener] = []
        self.selection = SelectionStateStore(candidates, on_mutation=self._invalidate)

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def request_sequence(self) -> int:
        with self._lock:
            return self._sequence

    def subscribe(self, listener: StateListener) -> None:
        """Register a callback invoked with every new state (under the session lock)."""
        with self._lock:
            self._listeners.append(listener)

    # Selection shortcuts; each one forces IDLE through the store callback.
    def toggle(self, candidate_id: str) -> None:
        self.selection.toggle(candidate_id)

    def select_all(self) -> None:
        self.selection.select_all()

    def deselect_all(self) -> None:
        self.selection.deselect_all()

    def optimize(
        self,
        origin: Any,
        parameters: Optional[Mapping[str, Any] | Hyperparameters] = None,
        preset: Optional[str] = None,
    ) -> SessionState:
        """Run one optimization and return the session state once this call is done.

        If the call was superseded (newer ``optimize`` or a selection change),
        its result is dropped and the current state is returned instead.
        """
        with self._lock:
            self._sequence += 1
            sequence = self._sequence
            self._active_sequence = sequence
            self._set_state(SessionStatus.VALIDATING, request_sequence=sequence)
            selection = self.selection.selected_candidates()
        self.logger.debug(f"optimize #{sequence}: {len(selection)} candidates selected")

        try:
            request = self.builder.build(
                selection=selection,
                origin=origin,
                owner_id=self.owner_id,
                parameters=parameters,
                preset=preset,
            )
        except ValidationError as exc:
            self.logger.info(f"optimize #{sequence} rejected ({exc.condition}): {exc.message}")
            return self._apply(sequence, SessionStatus.ERROR, error=ErrorCategory.VALIDATION_ERROR, detail=exc.message)

        if not self._apply_if_current(sequence, SessionStatus.REQUESTING):
            return self.state

        if self.probe is not None and not self._probe_ok():
            self.logger.warning(f"optimize #{sequence}: optimizer unreachable, skipping request")
            return self._apply(
                sequence,
                SessionStatus.ERROR,
                error=ErrorCategory.NETWORK_ERROR,
                detail="Cannot connect to the route optimization service.",
            )

        self.logger.info(f"optimize #{sequence}: requesting route for {len(request.candidates)} candidates")
        try:
            raw = self.optimizer.optimize(request)
        except Exception as exc:
            category = translate_error(exc)
            self.logger.warning(f"optimize #{sequence} failed ({category.value}): {exc!r}")
            return self._apply(sequence, SessionStatus.ERROR, error=category, detail=str(exc))

        if not self._apply_if_current(sequence, SessionStatus.RECONCILING):
            self.logger.info(f"optimize #{sequence}: response arrived after being superseded, discarded")
            return self.state

        context = ReconciliationContext(owner_id=self.owner_id, selection_ids=request.candidate_ids)
        result = self.reconciler.reconcile_with_tier(raw, context)
        telemetry = extract_telemetry(raw)
        self.logger.debug(f"optimize #{sequence}: reconciled via {result.tier.value} tier")

        state = self._apply(sequence, SessionStatus.READY, route=result.route, telemetry=telemetry)
        if state.status is SessionStatus.READY and state.request_sequence == sequence:
            self._persist(state)
        return state

    def _probe_ok(self) -> bool:
        try:
            return bool(self.probe())
        except Exception as exc:
            self.logger.warning(f"Connectivity probe raised: {exc!r}")
            return False

    def _persist(self, state: SessionState) -> None:
        if self.repository is None or state.route is None:
            return
        try:
            self.repository.save(state.route, state.telemetry)
        except Exception as exc:
            self.logger.warning(f"Failed to persist route {state.route.id}: {exc!r}")

    def _invalidate(self) -> None:
        with self._lock:
            if self._active_sequence is not None:
                self.logger.debug(f"Selection changed; retiring request #{self._active_sequence}")
            self._active_sequence = None
            self._set_state(SessionStatus.IDLE)

    def _apply_if_current(self, sequence: int, status: SessionStatus, **kwargs: Any) -> bool:
        with self._lock:
            if sequence != self._active_sequence:
                return False
            self._set_state(status, **kwargs)
            return True

    def _apply(self, sequence: int, status: SessionStatus, **kwargs: Any) -> SessionState:
        with self._lock:
            if not self._apply_if_current(sequence, status, **kwargs):
                self.logger.debug(f"Dropping {status.value} result of superseded request #{sequence}")
            return self._state

    def _set_state(self, status: SessionStatus, **kwargs: Any) -> None:
        self._state = self._state.transition(status, **kwargs)
        self.logger.debug(f"session {self.owner_id}: -> {status.value} (#{self._state.request_sequence})")
        for listener in list(self._listeners):
            listener(self._state)
