# backend/formadb/apps/training/router_sessions.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from formadb.database import get_db, get_read_db
from formadb.errors import TrainingError, to_http_exception
from formadb.security import get_current_active_user, require_staff
from ..accounts import models as account_models
from ..accounts import schemas as account_schemas
from . import attendance, enrollment, schemas, services

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _with_participants(db: Session, session) -> schemas.SessionWithParticipants:
    ids = session.participant_ids
    users = {}
    if ids:
        users = {
            user.id: user
            for user in db.query(account_models.User)
            .filter(account_models.User.id.in_(ids))
            .all()
        }
    data = schemas.SessionRead.model_validate(session).model_dump()
    return schemas.SessionWithParticipants(
        **data,
        participants=[
            account_schemas.UserSummary.model_validate(users[user_id])
            for user_id in ids
            if user_id in users
        ],
    )


def _enrollment_target(
    payload: Optional[schemas.EnrollmentRequest],
    current_user: account_models.User,
) -> str:
    """Students enroll themselves; staff may name another user."""
    user_id = payload.user_id if payload and payload.user_id else current_user.id
    if user_id != current_user.id and not current_user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff may enroll other users.",
        )
    return user_id


# ---------------------------------------------------------------------------
# SESSIONS
# ---------------------------------------------------------------------------


@router.get(
    "/",
    response_model=List[schemas.SessionRead],
    summary="List sessions, most recent date first",
)
def list_sessions(
    formation_id: Optional[str] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_sessions(db, formation_id=formation_id)


@router.get(
    "/missed",
    response_model=List[schemas.SessionRead],
    summary="Sessions the current user was marked absent for",
)
def my_missed_sessions(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return attendance.missed_sessions(db, current_user.id)


@router.get(
    "/{session_id}",
    response_model=schemas.SessionWithParticipants,
)
def get_session(
    session_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    try:
        session = services.get_session(db, session_id)
    except TrainingError as exc:
        raise to_http_exception(exc)
    return _with_participants(db, session)


@router.post(
    "/",
    response_model=schemas.SessionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a session (inherits the previous session's participants)",
)
def create_session(
    payload: schemas.SessionCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        return services.create_session(db, payload)
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.put(
    "/{session_id}",
    response_model=schemas.SessionRead,
)
def update_session(
    session_id: str,
    payload: schemas.SessionUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        return services.update_session(db, session_id, payload)
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_session(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        services.delete_session(db, session_id)
    except TrainingError as exc:
        raise to_http_exception(exc)


# ---------------------------------------------------------------------------
# ENROLLMENT
# ---------------------------------------------------------------------------


@router.post(
    "/{session_id}/enroll",
    response_model=schemas.SessionRead,
    summary="Enroll in a session (capacity enforced)",
)
def enroll(
    session_id: str,
    payload: Optional[schemas.EnrollmentRequest] = None,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    user_id = _enrollment_target(payload, current_user)
    try:
        return enrollment.enroll_in_session(db, session_id, user_id)
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.post(
    "/{session_id}/unenroll",
    response_model=schemas.SessionRead,
)
def unenroll(
    session_id: str,
    payload: Optional[schemas.EnrollmentRequest] = None,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    user_id = _enrollment_target(payload, current_user)
    try:
        return enrollment.unenroll_from_session(db, session_id, user_id)
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.post(
    "/formation/{formation_id}/enroll-all",
    response_model=schemas.BulkEnrollmentResult,
    summary="Enroll a user in every session of a formation (staff)",
)
def enroll_all(
    formation_id: str,
    payload: schemas.EnrollmentRequest,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    user_id = payload.user_id or current_user.id
    try:
        services.get_formation(db, formation_id)
        services.ensure_user(db, user_id, "User")
        return enrollment.enroll_across_formation(db, formation_id, user_id)
    except TrainingError as exc:
        raise to_http_exception(exc)
