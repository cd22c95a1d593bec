# backend/formadb/apps/training/progress.py
"""
Progress aggregation over the attendance ledger.

Nothing here is stored: every figure is recomputed from sessions and
attendance rows on each call. Unknown formations or participants produce
zero-valued results rather than errors.

Two scopes coexist on purpose:
- `formation_progress` divides by *all* sessions of the formation, whether or
  not the participant is enrolled in them.
- `formation_stats_for_all_enrolled` divides by the sessions each participant
  is actually enrolled in.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..accounts import models as account_models
from . import models, schemas


def percent(part: int, whole: int) -> int:
    """Integer percentage rounded half up; 0 when `whole` is 0."""
    if whole <= 0:
        return 0
    return (part * 200 + whole) // (2 * whole)


def _statuses_by_session(
    db: Session,
    formation_id: str,
    participant_id: str,
) -> Dict[str, models.AttendanceStatus]:
    rows = (
        db.query(models.Attendance.session_id, models.Attendance.status)
        .join(models.TrainingSession, models.Attendance.session_id == models.TrainingSession.id)
        .filter(
            models.TrainingSession.formation_id == formation_id,
            models.Attendance.participant_id == participant_id,
        )
        .all()
    )
    return {session_id: status for session_id, status in rows}


def formation_progress(
    db: Session,
    formation_id: str,
    participant_id: str,
) -> schemas.FormationProgress:
    total = (
        db.query(func.count(models.TrainingSession.id))
        .filter(models.TrainingSession.formation_id == formation_id)
        .scalar()
        or 0
    )
    statuses = _statuses_by_session(db, formation_id, participant_id)
    attended = sum(1 for status in statuses.values() if status in models.ATTENDED_STATUSES)
    missed = sum(1 for status in statuses.values() if status == models.AttendanceStatus.ABSENT)

    return schemas.FormationProgress(
        formation_id=formation_id,
        participant_id=participant_id,
        total_sessions=total,
        attended_sessions=attended,
        missed_sessions=missed,
        remaining_sessions=max(total - attended - missed, 0),
        progress_percent=percent(attended, total),
    )


def level_status(total: int, attended: int) -> str:
    if total == 0:
        return "locked"
    if attended >= total:
        return "validated"
    if attended > 0:
        return "in_progress"
    return "pending"


def level_progress(
    db: Session,
    formation_id: str,
    participant_id: str,
) -> List[schemas.LevelProgress]:
    """
    Per-level completion in ascending level order.

    A level with no sessions is never validated.
    """
    levels = (
        db.query(models.Level)
        .filter(models.Level.formation_id == formation_id)
        .order_by(models.Level.order.asc())
        .all()
    )
    sessions = (
        db.query(models.TrainingSession.id, models.TrainingSession.level_id)
        .filter(models.TrainingSession.formation_id == formation_id)
        .all()
    )
    statuses = _statuses_by_session(db, formation_id, participant_id)

    sessions_by_level: Dict[str, List[str]] = defaultdict(list)
    for session_id, level_id in sessions:
        sessions_by_level[level_id].append(session_id)

    result: List[schemas.LevelProgress] = []
    for level in levels:
        session_ids = sessions_by_level.get(level.id, [])
        total = len(session_ids)
        attended = sum(
            1 for sid in session_ids if statuses.get(sid) in models.ATTENDED_STATUSES
        )
        missed = sum(
            1 for sid in session_ids if statuses.get(sid) == models.AttendanceStatus.ABSENT
        )
        result.append(
            schemas.LevelProgress(
                level_id=level.id,
                order=level.order,
                title=level.title,
                total_sessions=total,
                attended_sessions=attended,
                missed_sessions=missed,
                remaining_sessions=max(total - attended - missed, 0),
                validated=total > 0 and attended >= total,
                status=level_status(total, attended),
            )
        )
    return result


def formation_stats_for_all_enrolled(
    db: Session,
    formation_id: str,
) -> List[schemas.EnrolledParticipantStats]:
    """
    Progress of everyone enrolled in at least one session of the formation.

    `total` counts only the sessions the participant is enrolled in, and
    `attended` only the attended sessions among those. Participants are listed
    in order of first enrollment.
    """
    enrollments = (
        db.query(models.SessionParticipant.user_id, models.SessionParticipant.session_id)
        .join(models.TrainingSession, models.SessionParticipant.session_id == models.TrainingSession.id)
        .filter(models.TrainingSession.formation_id == formation_id)
        .order_by(models.TrainingSession.sequence.asc(), models.SessionParticipant.position.asc())
        .all()
    )
    if not enrollments:
        return []

    sessions_by_user: Dict[str, set] = {}
    for user_id, session_id in enrollments:
        sessions_by_user.setdefault(user_id, set()).add(session_id)

    attended_rows = (
        db.query(models.Attendance.participant_id, models.Attendance.session_id)
        .join(models.TrainingSession, models.Attendance.session_id == models.TrainingSession.id)
        .filter(
            models.TrainingSession.formation_id == formation_id,
            models.Attendance.participant_id.in_(list(sessions_by_user)),
            models.Attendance.status.in_(list(models.ATTENDED_STATUSES)),
        )
        .all()
    )
    attended_by_user: Dict[str, set] = defaultdict(set)
    for user_id, session_id in attended_rows:
        attended_by_user[user_id].add(session_id)

    users = {
        user.id: user
        for user in db.query(account_models.User)
        .filter(account_models.User.id.in_(list(sessions_by_user)))
        .all()
    }

    stats: List[schemas.EnrolledParticipantStats] = []
    for user_id, session_ids in sessions_by_user.items():
        attended = len(attended_by_user[user_id] & session_ids)
        total = len(session_ids)
        user = users.get(user_id)
        stats.append(
            schemas.EnrolledParticipantStats(
                user_id=user_id,
                name=user.name if user else None,
                email=user.email if user else None,
                attended=attended,
                total=total,
                progress_percent=percent(attended, total),
            )
        )
    return stats
