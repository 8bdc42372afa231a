"""Optimization session endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.optimization import CreateSessionRequest, OptimizeRequest, SessionErrorModel, SessionSnapshot
from ...services.optimization.controller import OptimizationSessionController
from ...services.optimization.registry import SessionNotFound, SessionRegistry
from ...services.optimization.telemetry import normalize_series
from ..dependencies import get_registry

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _snapshot(session_id: str, controller: OptimizationSessionController) -> SessionSnapshot:
    state = controller.state
    telemetry = None
    if state.telemetry is not None:
        telemetry = state.telemetry.to_dict()
        telemetry["normalized_history"] = normalize_series(state.telemetry.fitness_history)
    error = None
    if state.error is not None:
        error = SessionErrorModel(category=state.error.value, message=state.error.message, detail=state.detail)
    return SessionSnapshot(
        session_id=session_id,
        owner_id=controller.owner_id,
        status=state.status.value,
        request_sequence=state.request_sequence,
        selected_ids=list(controller.selection.selected_ids()),
        route=state.route.to_dict() if state.route is not None else None,
        telemetry=telemetry,
        error=error,
    )


def _get_controller(registry: SessionRegistry, session_id: str) -> OptimizationSessionController:
    try:
        return registry.get(session_id)
    except SessionNotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} not found",
        ) from exc


@router.post("", response_model=SessionSnapshot, status_code=status.HTTP_201_CREATED)
def create_session(payload: CreateSessionRequest, registry: SessionRegistry = Depends(get_registry)) -> SessionSnapshot:
    try:
        session_id, controller = registry.create(payload.owner_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error creating optimization session: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create session: {str(exc)}",
        ) from exc
    return _snapshot(session_id, controller)


@router.get("/{session_id}", response_model=SessionSnapshot, status_code=status.HTTP_200_OK)
def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionSnapshot:
    return _snapshot(session_id, _get_controller(registry, session_id))


@router.delete("/{session_id}", status_code=status.HTTP_200_OK)
def close_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> dict:
    try:
        registry.close(session_id)
    except SessionNotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} not found",
        ) from exc
    return {"success": True, "message": f"Session {session_id} closed"}


@router.post("/{session_id}/selection/toggle/{candidate_id}", response_model=SessionSnapshot)
def toggle_candidate(
    session_id: str,
    candidate_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionSnapshot:
    controller = _get_controller(registry, session_id)
    controller.toggle(candidate_id)
    return _snapshot(session_id, controller)


@router.post("/{session_id}/selection/select-all", response_model=SessionSnapshot)
def select_all(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionSnapshot:
    controller = _get_controller(registry, session_id)
    controller.select_all()
    return _snapshot(session_id, controller)


@router.post("/{session_id}/selection/deselect-all", response_model=SessionSnapshot)
def deselect_all(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionSnapshot:
    controller = _get_controller(registry, session_id)
    controller.deselect_all()
    return _snapshot(session_id, controller)


@router.post("/{session_id}/optimize", response_model=SessionSnapshot)
def optimize(
    session_id: str,
    payload: OptimizeRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionSnapshot:
    """Run one optimization; failures are reported in the snapshot's ``error``, not as HTTP errors."""
    controller = _get_controller(registry, session_id)
    origin = payload.origin.model_dump() if payload.origin is not None else None
    try:
        controller.optimize(origin, parameters=payload.parameters, preset=payload.preset)
    except Exception as exc:
        logging.exception(f"Error optimizing session {session_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize route: {str(exc)}",
        ) from exc
    return _snapshot(session_id, controller)
