"""In-memory registry of optimization sessions served over HTTP."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Callable, Optional

from .base import CandidateSource, ConnectivityProbe, OptimizerGateway, RouteRepository
from .controller import OptimizationSessionController

logger = logging.getLogger(__name__)


class SessionNotFound(KeyError):
    pass


class SessionRegistry:
    def __init__(
        self,
        candidate_source: CandidateSource,
        optimizer_factory: Callable[[], OptimizerGateway],
        probe: Optional[ConnectivityProbe] = None,
        repository: Optional[RouteRepository] = None,
    ) -> None:
        self.candidate_source = candidate_source
        self.optimizer_factory = optimizer_factory
        self.probe = probe
        self.repository = repository
        self._sessions: dict[str, OptimizationSessionController] = {}
        self._lock = threading.Lock()

    def create(self, owner_id: str) -> tuple[str, OptimizationSessionController]:
        candidates = list(self.candidate_source.list_candidates())
        controller = OptimizationSessionController(
            owner_id=owner_id,
            optimizer=self.optimizer_factory(),
            candidates=candidates,
            probe=self.probe,
            repository=self.repository,
        )
        session_id = uuid.uuid4().hex
        with self._lock:
            self._sessions[session_id] = controller
        logger.info(f"Created optimization session {session_id} for {owner_id} over {len(candidates)} candidates")
        return session_id, controller

    def get(self, session_id: str) -> OptimizationSessionController:
        with self._lock:
            controller = self._sessions.get(session_id)
        if controller is None:
            raise SessionNotFound(session_id)
        return controller

    def close(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFound(session_id)
