"""Database persistence for optimized routes."""

from __future__ import annotations

import logging
from typing import Any

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import OptimizationTelemetry, Route


def route_to_record(route: Route, telemetry: OptimizationTelemetry | None = None) -> dict[str, Any]:
    payload = route.to_dict()
    return {
        "id": route.id,
        "owner_id": route.owner_id,
        "candidate_ids": list(route.candidate_ids),
        "points": payload["points"],
        "segments": payload["segments"],
        "total_distance": route.total_distance,
        "created_at": payload["createdAt"],
        "updated_at": payload["updatedAt"],
        "telemetry": telemetry.to_dict() if telemetry is not None else None,
    }


class SupabaseRouteRepository:
    """Upserts routes into the configured Supabase table.

    Without Supabase credentials the repository is a no-op.
    """

    def __init__(self, table: str | None = None) -> None:
        self.table = table or settings.routes_table

    def save(self, route: Route, telemetry: OptimizationTelemetry | None = None) -> None:
        supabase = get_supabase_client()
        if not supabase:
            logging.warning(f"Supabase not configured - route {route.id} was not stored")
            return
        supabase.table(self.table).upsert(route_to_record(route, telemetry)).execute()
        logging.info(f"Saved route {route.id} ({len(route.candidate_ids)} candidates) to '{self.table}'")
