# backend/formadb/apps/training/router_attendance.py

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from formadb.database import get_db, get_read_db
from formadb.errors import TrainingError, to_http_exception
from formadb.security import get_current_active_user, require_staff
from ..accounts import models as account_models
from . import attendance, schemas

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.get(
    "/session/{session_id}",
    response_model=List[schemas.AttendanceRead],
    summary="Attendance marks of a session, most recent first",
)
def list_for_session(
    session_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(require_staff),
):
    return attendance.list_for_session(db, session_id)


@router.get(
    "/participant/{participant_id}",
    response_model=List[schemas.AttendanceRead],
    summary="Attendance marks of a participant, most recent first",
)
def list_for_participant(
    participant_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    if current_user.id != participant_id and not current_user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You may only view your own attendance.",
        )
    return attendance.list_for_participant(db, participant_id)


@router.post(
    "/",
    response_model=schemas.AttendanceRead,
    summary="Mark attendance (updates the existing mark for the same session and participant)",
)
def mark_attendance(
    payload: schemas.AttendanceMark,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        return attendance.mark_attendance(
            db,
            payload.session_id,
            payload.participant_id,
            payload.status,
            marked_by_user_id=current_user.id,
        )
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.put(
    "/{attendance_id}",
    response_model=schemas.AttendanceRead,
)
def update_attendance(
    attendance_id: str,
    payload: schemas.AttendanceUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        return attendance.update_attendance(
            db,
            attendance_id,
            payload.status,
            marked_by_user_id=current_user.id,
        )
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.delete(
    "/{attendance_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_attendance(
    attendance_id: str,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_staff),
):
    try:
        attendance.delete_attendance(db, attendance_id)
    except TrainingError as exc:
        raise to_http_exception(exc)
