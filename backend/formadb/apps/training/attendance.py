# backend/formadb/apps/training/attendance.py
"""
Attendance ledger.

One row per (session, participant). Marking the same pair again updates the
existing row; progress is never stored, it is recomputed from these rows
(see progress.py).
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import Conflict, InvalidArgument, NotFound
from . import models, schemas
from .services import ensure_user, get_session

logger = logging.getLogger(__name__)


def coerce_status(raw: Union[str, models.AttendanceStatus]) -> models.AttendanceStatus:
    if isinstance(raw, models.AttendanceStatus):
        return raw
    try:
        return models.AttendanceStatus(str(raw).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in models.AttendanceStatus)
        raise InvalidArgument(f"Invalid attendance status {raw!r} (expected one of: {allowed}).")


def _find(db: Session, session_id: str, participant_id: str) -> Optional[models.Attendance]:
    return (
        db.query(models.Attendance)
        .filter(
            models.Attendance.session_id == session_id,
            models.Attendance.participant_id == participant_id,
        )
        .first()
    )


def get_attendance(db: Session, attendance_id: str) -> models.Attendance:
    record = db.query(models.Attendance).filter(models.Attendance.id == attendance_id).first()
    if not record:
        raise NotFound("Attendance record not found.")
    return record


def mark_attendance(
    db: Session,
    session_id: str,
    participant_id: str,
    status: Union[str, models.AttendanceStatus],
    *,
    marked_by_user_id: Optional[str] = None,
) -> models.Attendance:
    """
    Upsert the attendance of `participant_id` for `session_id`.

    The unique constraint on (session, participant) decides concurrent marks:
    the losing insert is rolled back and replayed as an update.
    """
    status = coerce_status(status)
    get_session(db, session_id)
    ensure_user(db, participant_id, "Participant")

    record = _find(db, session_id, participant_id)
    created = record is None
    if created:
        record = models.Attendance(
            session_id=session_id,
            participant_id=participant_id,
            status=status,
            marked_by_user_id=marked_by_user_id,
        )
        db.add(record)
    else:
        record.status = status
        record.marked_by_user_id = marked_by_user_id

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        record = _find(db, session_id, participant_id)
        if record is None:
            # Not a duplicate mark: the session or participant went away meanwhile.
            raise Conflict("Attendance could not be recorded, please retry.")
        created = False
        record.status = status
        record.marked_by_user_id = marked_by_user_id
        db.commit()

    db.refresh(record)
    logger.info(
        "Attendance marked",
        extra={
            "session_id": session_id,
            "participant_id": participant_id,
            "status": status.value,
            "created": created,
            "marked_by": marked_by_user_id,
        },
    )
    return record


def update_attendance(
    db: Session,
    attendance_id: str,
    status: Union[str, models.AttendanceStatus],
    *,
    marked_by_user_id: Optional[str] = None,
) -> models.Attendance:
    status = coerce_status(status)
    record = get_attendance(db, attendance_id)
    record.status = status
    record.marked_by_user_id = marked_by_user_id
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def delete_attendance(db: Session, attendance_id: str) -> None:
    record = get_attendance(db, attendance_id)
    db.delete(record)
    db.commit()


def list_for_session(db: Session, session_id: str) -> List[models.Attendance]:
    return (
        db.query(models.Attendance)
        .filter(models.Attendance.session_id == session_id)
        .order_by(models.Attendance.created_at.desc())
        .all()
    )


def list_for_participant(db: Session, participant_id: str) -> List[models.Attendance]:
    return (
        db.query(models.Attendance)
        .filter(models.Attendance.participant_id == participant_id)
        .order_by(models.Attendance.created_at.desc())
        .all()
    )


def missed_sessions(db: Session, participant_id: str) -> List[models.TrainingSession]:
    """Sessions the participant was marked absent for, most recent first."""
    return (
        db.query(models.TrainingSession)
        .join(models.Attendance, models.Attendance.session_id == models.TrainingSession.id)
        .filter(
            models.Attendance.participant_id == participant_id,
            models.Attendance.status == models.AttendanceStatus.ABSENT,
        )
        .order_by(models.TrainingSession.date.desc())
        .all()
    )


def participant_history(db: Session, participant_id: str) -> List[schemas.AttendanceHistoryItem]:
    rows = (
        db.query(models.Attendance, models.TrainingSession, models.Formation, models.Level)
        .join(models.TrainingSession, models.Attendance.session_id == models.TrainingSession.id)
        .join(models.Formation, models.TrainingSession.formation_id == models.Formation.id)
        .outerjoin(models.Level, models.TrainingSession.level_id == models.Level.id)
        .filter(models.Attendance.participant_id == participant_id)
        .order_by(models.Attendance.created_at.desc())
        .all()
    )
    return [
        schemas.AttendanceHistoryItem(
            attendance_id=record.id,
            status=record.status,
            session_id=session.id,
            session_date=session.date,
            formation_id=formation.id,
            formation_title=formation.title,
            level_id=level.id if level else None,
            level_order=level.order if level else None,
            level_title=level.title if level else None,
            marked_at=record.updated_at,
        )
        for record, session, formation, level in rows
    ]
