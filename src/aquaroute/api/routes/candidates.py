"""Candidate water point endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.optimization import CandidateModel, GeoPointModel
from ...services.optimization.registry import SessionRegistry
from ..dependencies import get_registry

router = APIRouter(prefix="/candidates", tags=["candidates"])


@router.get("", response_model=List[CandidateModel], status_code=status.HTTP_200_OK)
def list_candidates(registry: SessionRegistry = Depends(get_registry)) -> List[CandidateModel]:
    try:
        candidates = registry.candidate_source.list_candidates()
    except Exception as exc:
        logging.exception(f"Error loading candidates: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load candidates: {str(exc)}",
        ) from exc
    return [
        CandidateModel(
            id=candidate.id,
            location=GeoPointModel(latitude=candidate.location.latitude, longitude=candidate.location.longitude),
            address=candidate.address,
            label=candidate.label,
        )
        for candidate in candidates
    ]
