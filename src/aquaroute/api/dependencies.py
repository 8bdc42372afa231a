"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from functools import lru_cache

from ..config import settings
from ..data.candidates_repository import default_candidate_source
from ..persistence.database import SupabaseRouteRepository
from ..persistence.filesystem import FileRouteRepository
from ..services.optimization.client import OptimizerClient, check_health
from ..services.optimization.registry import SessionRegistry


def _default_repository():
    if settings.supabase_url and settings.supabase_key:
        return SupabaseRouteRepository()
    return FileRouteRepository()


@lru_cache()
def get_registry() -> SessionRegistry:
    """Process-wide session registry wired to the configured collaborators."""
    return SessionRegistry(
        candidate_source=default_candidate_source(),
        optimizer_factory=OptimizerClient,
        probe=check_health,
        repository=_default_repository(),
    )
