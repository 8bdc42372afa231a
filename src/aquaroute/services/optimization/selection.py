"""Candidate selection state."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional, Sequence

from ...models.domain import CandidatePoint

logger = logging.getLogger(__name__)


class SelectionStateStore:
    """Holds the candidate set and the chosen subset.

    Every mutation calls ``on_mutation`` so the owner can discard any result
    computed from the previous selection. Selected ids are always reported in
    candidate order.
    """

    def __init__(
        self,
        candidates: Iterable[CandidatePoint] = (),
        on_mutation: Optional[Callable[[], None]] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._candidates: tuple[CandidatePoint, ...] = tuple(candidates)
        self._selected: set[str] = set()
        self._on_mutation = on_mutation

    @property
    def candidates(self) -> tuple[CandidatePoint, ...]:
        return self._candidates

    def is_selected(self, candidate_id: str) -> bool:
        with self._lock:
            return candidate_id in self._selected

    def selected_ids(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(c.id for c in self._candidates if c.id in self._selected)

    def selected_candidates(self) -> tuple[CandidatePoint, ...]:
        with self._lock:
            return tuple(c for c in self._candidates if c.id in self._selected)

    def toggle(self, candidate_id: str) -> None:
        with self._lock:
            if candidate_id in self._selected:
                self._selected.discard(candidate_id)
                logger.debug(f"Deselected candidate {candidate_id}")
            elif any(c.id == candidate_id for c in self._candidates):
                self._selected.add(candidate_id)
                logger.debug(f"Selected candidate {candidate_id}")
            else:
                logger.debug(f"Ignoring toggle of unknown candidate {candidate_id}")
        self._notify()

    def select_all(self) -> None:
        with self._lock:
            self._selected = {c.id for c in self._candidates}
        self._notify()

    def deselect_all(self) -> None:
        with self._lock:
            self._selected.clear()
        self._notify()

    def replace_candidates(self, candidates: Sequence[CandidatePoint]) -> None:
        """Swap in a refreshed candidate list, keeping selections that still exist."""
        with self._lock:
            self._candidates = tuple(candidates)
            known = {c.id for c in self._candidates}
            self._selected &= known
        self._notify()

    def _notify(self) -> None:
        # Called outside the store lock; the listener takes its own lock.
        if self._on_mutation is not None:
            self._on_mutation()
