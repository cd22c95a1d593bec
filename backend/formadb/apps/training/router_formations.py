# backend/formadb/apps/training/router_formations.py

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from formadb.database import get_db, get_read_db
from formadb.errors import TrainingError, to_http_exception
from formadb.security import get_current_active_user, require_staff
from ..accounts import models as account_models
from . import schemas, services
from . import progress as progress_service

router = APIRouter(prefix="/formations", tags=["formations"])


def _ensure_self_or_staff(current_user: account_models.User, participant_id: str) -> None:
    if current_user.id != participant_id and not current_user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You may only view your own progress.",
        )


# ---------------------------------------------------------------------------
# FORMATIONS
# ---------------------------------------------------------------------------


@router.get(
    "/",
    response_model=List[schemas.FormationRead],
    summary="List formations",
)
def list_formations(
    active_only: bool = False,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_formations(db, active_only=active_only)


@router.get(
    "/{formation_id}",
    response_model=schemas.FormationRead,
    summary="Get a formation with its levels",
)
def get_formation(
    formation_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    try:
        return services.get_formation(db, formation_id)
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.post(
    "/",
    response_model=schemas.FormationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a formation (four levels are created with it)",
)
def create_formation(
    payload: schemas.FormationCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        return services.create_formation(db, payload, created_by_user_id=current_user.id)
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.put(
    "/{formation_id}",
    response_model=schemas.FormationRead,
    summary="Update a formation",
)
def update_formation(
    formation_id: str,
    payload: schemas.FormationUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        return services.update_formation(db, formation_id, payload)
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.delete(
    "/{formation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a formation with its levels and sessions",
)
def delete_formation(
    formation_id: str,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        services.delete_formation(db, formation_id)
    except TrainingError as exc:
        raise to_http_exception(exc)


# ---------------------------------------------------------------------------
# LEVELS
# ---------------------------------------------------------------------------


@router.get(
    "/{formation_id}/levels",
    response_model=List[schemas.LevelRead],
)
def list_levels(
    formation_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_levels(db, formation_id)


@router.post(
    "/{formation_id}/levels",
    response_model=schemas.LevelRead,
    status_code=status.HTTP_201_CREATED,
)
def create_level(
    formation_id: str,
    payload: schemas.LevelCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        return services.create_level(db, formation_id, payload)
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.delete(
    "/levels/{level_id}",
    summary="Delete a level and every session scheduled for it",
)
def delete_level(
    level_id: str,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        removed = services.delete_level(db, level_id)
    except TrainingError as exc:
        raise to_http_exception(exc)
    return {"level_id": level_id, "sessions_removed": removed}


# ---------------------------------------------------------------------------
# PROGRESS
# ---------------------------------------------------------------------------


@router.get(
    "/{formation_id}/stats",
    response_model=schemas.FormationStatsResponse,
    summary="Progress of every enrolled participant (per-enrollment totals)",
)
def formation_stats(
    formation_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        services.get_formation(db, formation_id)
    except TrainingError as exc:
        raise to_http_exception(exc)
    return schemas.FormationStatsResponse(
        formation_id=formation_id,
        participants=progress_service.formation_stats_for_all_enrolled(db, formation_id),
    )


@router.get(
    "/{formation_id}/progress/{participant_id}",
    response_model=schemas.FormationProgress,
    summary="Formation-wide progress of one participant",
)
def formation_progress(
    formation_id: str,
    participant_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    _ensure_self_or_staff(current_user, participant_id)
    return progress_service.formation_progress(db, formation_id, participant_id)


@router.get(
    "/{formation_id}/level-progress/{participant_id}",
    response_model=List[schemas.LevelProgress],
    summary="Per-level progress of one participant",
)
def level_progress(
    formation_id: str,
    participant_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    _ensure_self_or_staff(current_user, participant_id)
    return progress_service.level_progress(db, formation_id, participant_id)
