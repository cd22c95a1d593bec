# backend/formadb/apps/training/enrollment.py
"""
Session enrollment.

Capacity policy:
- Self / single-session enrollment always enforces `max_participants`, and
  re-checks the count after the insert is flushed so two concurrent
  enrollments cannot both take the last seat.
- Bulk enrollment across a formation is an administrative action and by
  default ignores capacity. Set ENFORCE_CAPACITY_ON_BULK_ENROLL=true to make
  it skip full sessions instead.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import CapacityExceeded, Conflict, NotEnrolled, NotFound
from . import models, schemas
from .services import ensure_user, get_session, list_formation_sessions

logger = logging.getLogger(__name__)

ENFORCE_CAPACITY_ON_BULK_ENROLL = os.getenv(
    "ENFORCE_CAPACITY_ON_BULK_ENROLL", "false"
).lower() in {"1", "true", "yes", "on"}

_BULK_RETRIES = 2


def _lock_session(db: Session, session_id: str) -> models.TrainingSession:
    # FOR UPDATE serialises enrollments on PostgreSQL; SQLite ignores it.
    session = (
        db.query(models.TrainingSession)
        .filter(models.TrainingSession.id == session_id)
        .with_for_update()
        .first()
    )
    if not session:
        raise NotFound("Session not found.")
    return session


def _participant_count(db: Session, session_id: str) -> int:
    return (
        db.query(func.count(models.SessionParticipant.id))
        .filter(models.SessionParticipant.session_id == session_id)
        .scalar()
        or 0
    )


def _next_position(db: Session, session_id: str) -> int:
    current = (
        db.query(func.max(models.SessionParticipant.position))
        .filter(models.SessionParticipant.session_id == session_id)
        .scalar()
    )
    return 0 if current is None else current + 1


def _get_enrollment(db: Session, session_id: str, user_id: str) -> Optional[models.SessionParticipant]:
    return (
        db.query(models.SessionParticipant)
        .filter(
            models.SessionParticipant.session_id == session_id,
            models.SessionParticipant.user_id == user_id,
        )
        .first()
    )


def is_enrolled(db: Session, session_id: str, user_id: str) -> bool:
    return _get_enrollment(db, session_id, user_id) is not None


def enroll_in_session(db: Session, session_id: str, user_id: str) -> models.TrainingSession:
    ensure_user(db, user_id, "User")
    session = _lock_session(db, session_id)

    if _get_enrollment(db, session_id, user_id):
        raise Conflict("Already enrolled in this session.")
    if _participant_count(db, session_id) >= session.max_participants:
        raise CapacityExceeded("Session is full.")

    session.enrollments.append(
        models.SessionParticipant(
            user_id=user_id,
            position=_next_position(db, session_id),
        )
    )
    try:
        db.flush()
        # Re-verify at the point of write: a concurrent enrollment may have
        # committed between the check above and this insert.
        if _participant_count(db, session_id) > session.max_participants:
            db.rollback()
            logger.warning(
                "Enrollment rolled back, capacity reached concurrently",
                extra={"session_id": session_id, "user_id": user_id},
            )
            raise CapacityExceeded("Session is full.")
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Already enrolled in this session.")

    db.refresh(session)
    return session


def unenroll_from_session(db: Session, session_id: str, user_id: str) -> models.TrainingSession:
    session = get_session(db, session_id)
    enrollment = _get_enrollment(db, session_id, user_id)
    if not enrollment:
        raise NotEnrolled("Not enrolled in this session.")

    session.enrollments.remove(enrollment)
    db.delete(enrollment)
    db.commit()
    db.refresh(session)
    return session


def enroll_across_formation(
    db: Session,
    formation_id: str,
    user_id: str,
    *,
    enforce_capacity: Optional[bool] = None,
) -> schemas.BulkEnrollmentResult:
    """
    Add `user_id` to every session of the formation it is not yet part of.

    Idempotent per session: sessions that already list the user are counted
    as touched but not modified.
    """
    if enforce_capacity is None:
        enforce_capacity = ENFORCE_CAPACITY_ON_BULK_ENROLL

    ensure_user(db, user_id, "User")

    for attempt in range(_BULK_RETRIES):
        sessions = list_formation_sessions(db, formation_id)
        if not sessions:
            raise NotFound("No sessions found for this formation.")

        touched = 0
        added = 0
        skipped_full = 0
        # Flushes and the commit share one guard: the unique constraint may
        # reject any of them when another writer enrolled the user first.
        try:
            for session in sessions:
                if user_id in session.participant_ids:
                    touched += 1
                    continue
                if enforce_capacity and len(session.enrollments) >= session.max_participants:
                    skipped_full += 1
                    continue
                session.enrollments.append(
                    models.SessionParticipant(
                        user_id=user_id,
                        position=_next_position(db, session.id),
                    )
                )
                db.flush()
                touched += 1
                added += 1
            db.commit()
        except IntegrityError:
            # Rollback expires the loaded collections; the next pass re-reads them.
            db.rollback()
            logger.warning(
                "Bulk enrollment lost a concurrent write",
                extra={"formation_id": formation_id, "user_id": user_id, "attempt": attempt + 1},
            )
            if attempt + 1 < _BULK_RETRIES:
                continue
            raise Conflict("Concurrent enrollment changes, please retry.")
        break

    logger.info(
        "Bulk enrollment applied",
        extra={
            "formation_id": formation_id,
            "user_id": user_id,
            "sessions_touched": touched,
            "newly_enrolled": added,
            "skipped_full": skipped_full,
        },
    )
    return schemas.BulkEnrollmentResult(
        formation_id=formation_id,
        user_id=user_id,
        sessions_touched=touched,
        newly_enrolled=added,
        skipped_full=skipped_full,
    )
