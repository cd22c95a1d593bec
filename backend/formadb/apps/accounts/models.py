# backend/formadb/apps/accounts/models.py

from __future__ import annotations

import enum
import unicodedata
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, Index, String
from sqlalchemy.orm import validates

from ...database import Base
from ...errors import InvalidArgument
from ...utils.identifiers import prefixed_id_factory


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class Role(str, enum.Enum):
    """Closed set of portal roles.

    Legacy data carries French and inconsistently cased labels
    ("formateur", "Responsable", "responsable"); everything entering the
    system goes through `normalize_role` once.
    """

    ADMIN = "admin"
    TRAINER = "trainer"
    MANAGER = "manager"
    STUDENT = "student"


class UserStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    REJECTED = "rejected"


STAFF_ROLES = frozenset({Role.ADMIN, Role.TRAINER, Role.MANAGER})

_ROLE_ALIASES = {
    "admin": Role.ADMIN,
    "administrateur": Role.ADMIN,
    "trainer": Role.TRAINER,
    "formateur": Role.TRAINER,
    "manager": Role.MANAGER,
    "responsable": Role.MANAGER,
    "student": Role.STUDENT,
    "etudiant": Role.STUDENT,
    "apprenant": Role.STUDENT,
}


def _fold(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_role(raw) -> Role:
    """
    Map any accepted role label (enum, canonical or legacy string) to `Role`.
    """
    if isinstance(raw, Role):
        return raw
    if raw is None:
        raise InvalidArgument("Role is required.")
    role = _ROLE_ALIASES.get(_fold(str(raw)))
    if role is None:
        raise InvalidArgument(f"Unknown role {raw!r}.")
    return role


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class User(Base):
    """
    Portal account: students, trainers, managers and admins.

    Accounts are never hard-deleted; the lifecycle is carried by `status`.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_role_status", "role", "status"),
    )

    id = Column(String(36), primary_key=True, default=prefixed_id_factory("USR"))

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)

    role = Column(
        Enum(Role, name="user_role_enum"),
        nullable=False,
        default=Role.MANAGER,
        index=True,
    )
    status = Column(
        Enum(UserStatus, name="user_status_enum"),
        nullable=False,
        default=UserStatus.PENDING,
        index=True,
    )

    profile_image = Column(String(512), nullable=True)

    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    @validates("role")
    def _validate_role(self, key, value):
        return normalize_role(value)

    @validates("email")
    def _validate_email(self, key, value):
        return normalize_email(value)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email} role={self.role}>"
