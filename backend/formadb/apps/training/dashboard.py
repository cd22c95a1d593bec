# backend/formadb/apps/training/dashboard.py
"""
Student dashboard read model, assembled from progress and the attendance
ledger.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..accounts import models as account_models
from . import models, schemas
from .certification import get_certificate_for
from .progress import level_progress, percent

UPCOMING_LIMIT = 5


def _enrolled_formations(db: Session, user_id: str) -> List[models.Formation]:
    sessions = (
        db.query(models.TrainingSession)
        .join(models.SessionParticipant, models.SessionParticipant.session_id == models.TrainingSession.id)
        .filter(models.SessionParticipant.user_id == user_id)
        .order_by(models.TrainingSession.date.asc(), models.TrainingSession.sequence.asc())
        .all()
    )
    seen: Dict[str, models.Formation] = {}
    for session in sessions:
        if session.formation_id not in seen and session.formation is not None:
            seen[session.formation_id] = session.formation
    return list(seen.values())


def _formation_card(db: Session, formation: models.Formation, user_id: str) -> schemas.DashboardFormation:
    sessions = (
        db.query(models.TrainingSession)
        .filter(models.TrainingSession.formation_id == formation.id)
        .order_by(models.TrainingSession.date.asc(), models.TrainingSession.sequence.asc())
        .all()
    )
    statuses = {
        record.session_id: record.status
        for record in db.query(models.Attendance)
        .filter(
            models.Attendance.participant_id == user_id,
            models.Attendance.session_id.in_([s.id for s in sessions]),
        )
        .all()
    }
    attended = sum(1 for status in statuses.values() if status in models.ATTENDED_STATUSES)
    certificate = get_certificate_for(db, user_id, formation.id)

    return schemas.DashboardFormation(
        id=formation.id,
        title=formation.title,
        description=formation.description,
        color=formation.color,
        pattern=formation.pattern,
        progress_percent=percent(attended, len(sessions)),
        levels=level_progress(db, formation.id, user_id),
        sessions=[
            schemas.DashboardSession(
                id=session.id,
                title=session.level.title if session.level else f"Session {session.date.isoformat()}",
                date=session.date,
                attendance_status=statuses[session.id].value if session.id in statuses else "pending",
            )
            for session in sessions
        ],
        certificate_code=certificate.certificate_code if certificate else None,
    )


def upcoming_sessions(
    db: Session,
    user_id: str,
    *,
    today: Optional[date] = None,
    limit: int = UPCOMING_LIMIT,
) -> List[schemas.UpcomingSession]:
    today = today or date.today()
    rows = (
        db.query(models.TrainingSession, account_models.User.name)
        .join(models.SessionParticipant, models.SessionParticipant.session_id == models.TrainingSession.id)
        .outerjoin(account_models.User, account_models.User.id == models.TrainingSession.trainer_id)
        .filter(
            models.SessionParticipant.user_id == user_id,
            models.TrainingSession.date >= today,
        )
        .order_by(models.TrainingSession.date.asc(), models.TrainingSession.start_time.asc())
        .limit(limit)
        .all()
    )
    return [
        schemas.UpcomingSession(
            id=session.id,
            formation_title=session.formation.title,
            level_title=session.level.title if session.level else None,
            date=session.date,
            start_time=session.start_time,
            end_time=session.end_time,
            trainer_name=trainer_name,
        )
        for session, trainer_name in rows
    ]


def missed_for_dashboard(db: Session, user_id: str) -> List[schemas.MissedSession]:
    rows = (
        db.query(models.TrainingSession.id, models.Formation.title, models.TrainingSession.date)
        .join(models.Attendance, models.Attendance.session_id == models.TrainingSession.id)
        .join(models.Formation, models.Formation.id == models.TrainingSession.formation_id)
        .filter(
            models.Attendance.participant_id == user_id,
            models.Attendance.status == models.AttendanceStatus.ABSENT,
        )
        .order_by(models.TrainingSession.date.desc())
        .all()
    )
    return [
        schemas.MissedSession(id=session_id, formation_title=title, date=session_date)
        for session_id, title, session_date in rows
    ]


def _count_marks(db: Session, user_id: str, statuses) -> int:
    return (
        db.query(func.count(models.Attendance.id))
        .filter(
            models.Attendance.participant_id == user_id,
            models.Attendance.status.in_(list(statuses)),
        )
        .scalar()
        or 0
    )


def student_dashboard(
    db: Session,
    user_id: str,
    *,
    today: Optional[date] = None,
) -> schemas.StudentDashboard:
    formations = _enrolled_formations(db, user_id)
    return schemas.StudentDashboard(
        stats=schemas.DashboardStats(
            total_formations=len(formations),
            total_sessions_attended=_count_marks(db, user_id, models.ATTENDED_STATUSES),
            total_missed_sessions=_count_marks(db, user_id, [models.AttendanceStatus.ABSENT]),
        ),
        formations=[_formation_card(db, formation, user_id) for formation in formations],
        upcoming_sessions=upcoming_sessions(db, user_id, today=today),
        missed_sessions=missed_for_dashboard(db, user_id),
    )
