# backend/formadb/apps/training/models.py

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import prefixed_id_factory


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"


# Statuses that count as having attended a session.
ATTENDED_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.LATE})

DEFAULT_LEVEL_COUNT = 4
DEFAULT_MAX_PARTICIPANTS = 30


# ---------------------------------------------------------------------------
# FORMATIONS (TRAINING PROGRAMS)
# ---------------------------------------------------------------------------


class Formation(Base):
    """
    A training program. Owns its ordered levels and, through them, its sessions.

    `color` / `pattern` are derived once from the identifier
    (see `palette.py`) and never recomputed.
    """

    __tablename__ = "formations"
    __table_args__ = (
        CheckConstraint("duration_hours >= 1", name="ck_formations_duration_positive"),
        Index("idx_formations_active", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=prefixed_id_factory("FRM"))

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    duration_hours = Column(Integer, nullable=False, doc="Total duration in hours (>= 1).")
    start_date = Column(Date, nullable=False)

    created_by_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    default_trainer_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_active = Column(Boolean, nullable=False, default=True)

    color = Column(String(16), nullable=False)
    pattern = Column(String(32), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    levels = relationship(
        "Level",
        back_populates="formation",
        order_by="Level.order",
        cascade="all, delete",
    )
    sessions = relationship(
        "TrainingSession",
        back_populates="formation",
        cascade="all, delete",
    )

    def __repr__(self) -> str:
        return f"<Formation {self.id} {self.title!r}>"


class Level(Base):
    """
    Ordered curriculum stage of a formation (1..N). Deleting a level deletes
    the sessions scheduled for it.
    """

    __tablename__ = "levels"
    __table_args__ = (
        UniqueConstraint("formation_id", "level_order", name="uq_levels_formation_order"),
        CheckConstraint("level_order >= 1", name="ck_levels_order_positive"),
    )

    id = Column(String(36), primary_key=True, default=prefixed_id_factory("LVL"))

    formation_id = Column(
        String(36),
        ForeignKey("formations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # "order" is reserved in SQL, so the column gets a different name.
    order = Column("level_order", Integer, nullable=False)
    title = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    formation = relationship("Formation", back_populates="levels")
    sessions = relationship(
        "TrainingSession",
        back_populates="level",
        cascade="all, delete",
    )

    def __repr__(self) -> str:
        return f"<Level {self.id} formation={self.formation_id} order={self.order}>"


# ---------------------------------------------------------------------------
# SESSIONS + ENROLMENT
# ---------------------------------------------------------------------------


class TrainingSession(Base):
    """
    One scheduled occurrence of a level, with a trainer and a capacity.

    `sequence` numbers sessions per formation in creation order; the newest
    prior session is the source of the participant carry-over.
    """

    __tablename__ = "training_sessions"
    __table_args__ = (
        UniqueConstraint("formation_id", "sequence", name="uq_training_sessions_formation_sequence"),
        CheckConstraint("max_participants >= 1", name="ck_training_sessions_capacity_positive"),
        Index("idx_training_sessions_formation_date", "formation_id", "date"),
        Index("idx_training_sessions_level", "level_id"),
    )

    id = Column(String(36), primary_key=True, default=prefixed_id_factory("SES"))

    formation_id = Column(
        String(36),
        ForeignKey("formations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    level_id = Column(
        String(36),
        ForeignKey("levels.id", ondelete="CASCADE"),
        nullable=False,
    )

    date = Column(Date, nullable=False)
    start_time = Column(String(16), nullable=False, doc="Free-form time of day, e.g. '09:00'.")
    end_time = Column(String(16), nullable=False)

    trainer_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    max_participants = Column(Integer, nullable=False, default=DEFAULT_MAX_PARTICIPANTS)
    sequence = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    formation = relationship("Formation", back_populates="sessions")
    level = relationship("Level", back_populates="sessions")
    enrollments = relationship(
        "SessionParticipant",
        back_populates="session",
        order_by="SessionParticipant.position",
        cascade="all, delete-orphan",
    )
    attendances = relationship(
        "Attendance",
        back_populates="session",
        cascade="all, delete",
    )

    @property
    def participant_ids(self) -> list:
        return [enrollment.user_id for enrollment in self.enrollments]

    def __repr__(self) -> str:
        return f"<TrainingSession {self.id} formation={self.formation_id} date={self.date}>"


class SessionParticipant(Base):
    """
    Ordered membership of a user in a session's participant list.
    """

    __tablename__ = "session_participants"
    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="uq_session_participants_session_user"),
        Index("idx_session_participants_user", "user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    session_id = Column(
        String(36),
        ForeignKey("training_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    position = Column(Integer, nullable=False, default=0)
    enrolled_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    session = relationship("TrainingSession", back_populates="enrollments")

    def __repr__(self) -> str:
        return f"<SessionParticipant session={self.session_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# ATTENDANCE
# ---------------------------------------------------------------------------


class Attendance(Base):
    """
    A participant's status for one session. At most one row per
    (session, participant); re-marking updates the row.
    """

    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("session_id", "participant_id", name="uq_attendances_session_participant"),
        Index("idx_attendances_participant_status", "participant_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=prefixed_id_factory("ATT"))

    session_id = Column(
        String(36),
        ForeignKey("training_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    participant_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    status = Column(
        Enum(AttendanceStatus, name="attendance_status_enum"),
        nullable=False,
        default=AttendanceStatus.ABSENT,
    )

    marked_by_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    session = relationship("TrainingSession", back_populates="attendances")

    @property
    def attended(self) -> bool:
        return self.status in ATTENDED_STATUSES

    def __repr__(self) -> str:
        return f"<Attendance session={self.session_id} participant={self.participant_id} status={self.status}>"


# ---------------------------------------------------------------------------
# CERTIFICATES
# ---------------------------------------------------------------------------


class Certificate(Base):
    """
    Completion certificate. At most one per (user, formation).
    """

    __tablename__ = "certificates"
    __table_args__ = (
        UniqueConstraint("user_id", "formation_id", name="uq_certificates_user_formation"),
    )

    id = Column(String(36), primary_key=True, default=prefixed_id_factory("CRT"))

    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    formation_id = Column(
        String(36),
        ForeignKey("formations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    certificate_code = Column(String(64), nullable=False, unique=True)
    issued_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    issued_by_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    formation = relationship("Formation", lazy="joined")

    def __repr__(self) -> str:
        return f"<Certificate {self.certificate_code} user={self.user_id} formation={self.formation_id}>"
