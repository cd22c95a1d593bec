# backend/formadb/apps/training/services.py
"""
Formation catalogue, levels and session scheduling.

Enrollment, attendance, progress and certification live in their own
modules next to this one; everything here is plain CRUD plus the two
structural rules of the catalogue:

- a new formation gets exactly DEFAULT_LEVEL_COUNT ordered levels;
- a new session starts with the participants of the newest prior session
  of the same formation (copied once, never re-synchronised).
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import Conflict, InvalidArgument, NotFound
from ...utils.identifiers import generate_entity_id
from ..accounts import models as account_models
from . import models, schemas
from .palette import formation_color, formation_pattern

logger = logging.getLogger(__name__)

_SEQUENCE_RETRIES = 3


def default_level_title(order: int) -> str:
    return f"Level {order}"


# ---------------------------------------------------------------------------
# LOOKUPS
# ---------------------------------------------------------------------------


def get_formation(db: Session, formation_id: str) -> models.Formation:
    formation = db.query(models.Formation).filter(models.Formation.id == formation_id).first()
    if not formation:
        raise NotFound("Formation not found.")
    return formation


def get_level(db: Session, level_id: str) -> models.Level:
    level = db.query(models.Level).filter(models.Level.id == level_id).first()
    if not level:
        raise NotFound("Level not found.")
    return level


def get_session(db: Session, session_id: str) -> models.TrainingSession:
    session = (
        db.query(models.TrainingSession)
        .filter(models.TrainingSession.id == session_id)
        .first()
    )
    if not session:
        raise NotFound("Session not found.")
    return session


def ensure_user(db: Session, user_id: str, label: str) -> account_models.User:
    user = db.query(account_models.User).filter(account_models.User.id == user_id).first()
    if not user:
        raise NotFound(f"{label} not found.")
    return user


# ---------------------------------------------------------------------------
# FORMATIONS
# ---------------------------------------------------------------------------


def create_formation(
    db: Session,
    data: schemas.FormationCreate,
    *,
    created_by_user_id: Optional[str],
) -> models.Formation:
    if data.duration_hours < 1:
        raise InvalidArgument("Duration must be at least 1 hour.")
    if data.default_trainer_id:
        ensure_user(db, data.default_trainer_id, "Default trainer")

    formation = models.Formation(
        title=data.title.strip(),
        description=data.description.strip(),
        duration_hours=data.duration_hours,
        start_date=data.start_date or date.today(),
        created_by_user_id=created_by_user_id,
        default_trainer_id=data.default_trainer_id,
    )
    # The identifier is the palette seed, so generate it before anything else.
    formation.id = generate_entity_id("FRM")
    formation.color = formation_color(formation.id)
    formation.pattern = formation_pattern(formation.id)

    for order in range(1, models.DEFAULT_LEVEL_COUNT + 1):
        formation.levels.append(models.Level(order=order, title=default_level_title(order)))

    db.add(formation)
    db.commit()
    db.refresh(formation)
    logger.info(
        "Formation created",
        extra={"formation_id": formation.id, "created_by": created_by_user_id},
    )
    return formation


def update_formation(
    db: Session,
    formation_id: str,
    data: schemas.FormationUpdate,
) -> models.Formation:
    formation = get_formation(db, formation_id)
    payload = data.model_dump(exclude_unset=True)

    if payload.get("default_trainer_id"):
        ensure_user(db, payload["default_trainer_id"], "Default trainer")

    for field, value in payload.items():
        if value is None and field not in {"default_trainer_id"}:
            continue
        if isinstance(value, str) and field in {"title", "description"}:
            value = value.strip()
        setattr(formation, field, value)

    db.add(formation)
    db.commit()
    db.refresh(formation)
    return formation


def delete_formation(db: Session, formation_id: str) -> None:
    formation = get_formation(db, formation_id)
    db.delete(formation)
    db.commit()
    logger.info("Formation deleted", extra={"formation_id": formation_id})


def list_formations(db: Session, *, active_only: bool = False) -> List[models.Formation]:
    query = db.query(models.Formation)
    if active_only:
        query = query.filter(models.Formation.is_active.is_(True))
    return query.order_by(models.Formation.created_at.desc()).all()


# ---------------------------------------------------------------------------
# LEVELS
# ---------------------------------------------------------------------------


def list_levels(db: Session, formation_id: str) -> List[models.Level]:
    return (
        db.query(models.Level)
        .filter(models.Level.formation_id == formation_id)
        .order_by(models.Level.order.asc())
        .all()
    )


def create_level(db: Session, formation_id: str, data: schemas.LevelCreate) -> models.Level:
    get_formation(db, formation_id)

    clash = (
        db.query(models.Level)
        .filter(
            models.Level.formation_id == formation_id,
            models.Level.order == data.order,
        )
        .first()
    )
    if clash:
        raise Conflict(f"Level {data.order} already exists for this formation.")

    level = models.Level(
        formation_id=formation_id,
        order=data.order,
        title=(data.title or "").strip() or default_level_title(data.order),
    )
    db.add(level)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(f"Level {data.order} already exists for this formation.")
    db.refresh(level)
    return level


def delete_level(db: Session, level_id: str) -> int:
    """
    Delete a level and every session scheduled for it.

    Returns the number of sessions removed with the level.
    """
    level = get_level(db, level_id)
    formation_id = level.formation_id
    removed = len(level.sessions)
    db.delete(level)
    db.commit()
    logger.info(
        "Level deleted",
        extra={"level_id": level_id, "formation_id": formation_id, "sessions_removed": removed},
    )
    return removed


# ---------------------------------------------------------------------------
# SESSIONS
# ---------------------------------------------------------------------------


def latest_session(db: Session, formation_id: str) -> Optional[models.TrainingSession]:
    return (
        db.query(models.TrainingSession)
        .filter(models.TrainingSession.formation_id == formation_id)
        .order_by(models.TrainingSession.sequence.desc())
        .first()
    )


def create_session(db: Session, data: schemas.SessionCreate) -> models.TrainingSession:
    """
    Schedule a session for a level of a formation.

    The participant list starts as a copy of the newest prior session of the
    same formation so a cohort follows newly scheduled sessions. Capacity is
    not applied to the copy.
    """
    formation = get_formation(db, data.formation_id)
    level = get_level(db, data.level_id)
    if level.formation_id != formation.id:
        raise InvalidArgument("Level does not belong to this formation.")

    trainer_id = data.trainer_id or formation.default_trainer_id
    if not trainer_id:
        raise InvalidArgument("A trainer is required (no default trainer on the formation).")
    ensure_user(db, trainer_id, "Trainer")

    for _ in range(_SEQUENCE_RETRIES):
        prior = latest_session(db, formation.id)
        session = models.TrainingSession(
            formation_id=formation.id,
            level_id=level.id,
            date=data.date,
            start_time=data.start_time.strip(),
            end_time=data.end_time.strip(),
            trainer_id=trainer_id,
            max_participants=data.max_participants,
            sequence=(prior.sequence if prior else 0) + 1,
        )
        inherited = prior.participant_ids if prior else []
        for position, user_id in enumerate(inherited):
            session.enrollments.append(
                models.SessionParticipant(user_id=user_id, position=position)
            )

        db.add(session)
        try:
            db.commit()
        except IntegrityError:
            # Another session took this sequence number; re-read and retry.
            db.rollback()
            continue

        db.refresh(session)
        logger.info(
            "Session created",
            extra={
                "session_id": session.id,
                "formation_id": formation.id,
                "inherited_participants": len(inherited),
            },
        )
        return session

    raise Conflict("Concurrent session creation for this formation, please retry.")


def update_session(
    db: Session,
    session_id: str,
    data: schemas.SessionUpdate,
) -> models.TrainingSession:
    session = get_session(db, session_id)
    payload = data.model_dump(exclude_unset=True)

    if payload.get("level_id"):
        level = get_level(db, payload["level_id"])
        if level.formation_id != session.formation_id:
            raise InvalidArgument("Level does not belong to this session's formation.")
    if payload.get("trainer_id"):
        ensure_user(db, payload["trainer_id"], "Trainer")

    for field, value in payload.items():
        if value is None:
            continue
        setattr(session, field, value.strip() if isinstance(value, str) else value)

    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def delete_session(db: Session, session_id: str) -> None:
    session = get_session(db, session_id)
    db.delete(session)
    db.commit()


def list_sessions(
    db: Session,
    *,
    formation_id: Optional[str] = None,
) -> List[models.TrainingSession]:
    query = db.query(models.TrainingSession)
    if formation_id:
        query = query.filter(models.TrainingSession.formation_id == formation_id)
    return query.order_by(
        models.TrainingSession.date.desc(),
        models.TrainingSession.sequence.desc(),
    ).all()


def list_formation_sessions(db: Session, formation_id: str) -> List[models.TrainingSession]:
    """Sessions of one formation in creation order."""
    return (
        db.query(models.TrainingSession)
        .filter(models.TrainingSession.formation_id == formation_id)
        .order_by(models.TrainingSession.sequence.asc())
        .all()
    )


def count_sessions(db: Session, formation_id: str) -> int:
    return (
        db.query(func.count(models.TrainingSession.id))
        .filter(models.TrainingSession.formation_id == formation_id)
        .scalar()
        or 0
    )
