# backend/formadb/apps/accounts/services.py

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import AccessDenied, Conflict, InvalidArgument, NotFound
from ...security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    get_password_hash,
    password_needs_rehash,
    verify_password,
)
from . import models, schemas
from .models import Role, UserStatus, normalize_email, normalize_role

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

_STATUS_LOGIN_MESSAGES = {
    UserStatus.PENDING: "Account awaiting administrator approval.",
    UserStatus.SUSPENDED: "Account suspended.",
    UserStatus.REJECTED: "Account request was rejected.",
}


def _validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidArgument(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
        )


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.email == normalize_email(email))
        .first()
    )


def get_user(db: Session, user_id: str) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise NotFound("User not found.")
    return user


def _ensure_email_free(db: Session, email: str, *, exclude_user_id: Optional[str] = None) -> None:
    query = db.query(models.User).filter(models.User.email == normalize_email(email))
    if exclude_user_id:
        query = query.filter(models.User.id != exclude_user_id)
    if query.first():
        raise Conflict("A user with this email already exists.")


def _commit_user(db: Session, user: models.User) -> models.User:
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against another signup for the same email.
        db.rollback()
        raise Conflict("A user with this email already exists.")
    db.refresh(user)
    return user


def signup(db: Session, data: schemas.SignupRequest) -> models.User:
    """
    Self-service registration.

    New accounts default to MANAGER and stay PENDING until an admin approves
    them. Nobody can self-register as ADMIN.
    """
    role = normalize_role(data.role) if data.role else Role.MANAGER
    if role == Role.ADMIN:
        raise InvalidArgument("Admin accounts cannot be requested via signup.")
    _validate_password_strength(data.password)
    _ensure_email_free(db, data.email)

    user = models.User(
        name=data.name.strip(),
        email=data.email,
        hashed_password=get_password_hash(data.password),
        role=role,
        status=UserStatus.PENDING,
    )
    user = _commit_user(db, user)
    logger.info("User signed up", extra={"user_id": user.id, "role": user.role.value})
    return user


def create_user_by_admin(db: Session, data: schemas.AdminUserCreate) -> models.User:
    role = normalize_role(data.role) if data.role else Role.STUDENT
    _validate_password_strength(data.password)
    _ensure_email_free(db, data.email)

    user = models.User(
        name=data.name.strip(),
        email=data.email,
        hashed_password=get_password_hash(data.password),
        role=role,
        status=data.status,
    )
    return _commit_user(db, user)


def admin_update_user(db: Session, user_id: str, data: schemas.AdminUserUpdate) -> models.User:
    user = get_user(db, user_id)
    payload = data.model_dump(exclude_unset=True)

    if payload.get("email"):
        _ensure_email_free(db, payload["email"], exclude_user_id=user.id)
        user.email = payload["email"]
    if payload.get("name"):
        user.name = payload["name"].strip()
    if payload.get("role"):
        user.role = normalize_role(payload["role"])
    if payload.get("status"):
        user.status = payload["status"]

    return _commit_user(db, user)


def update_profile(db: Session, user: models.User, data: schemas.ProfileUpdate) -> models.User:
    payload = data.model_dump(exclude_unset=True)

    if payload.get("email"):
        _ensure_email_free(db, payload["email"], exclude_user_id=user.id)
        user.email = payload["email"]
    if payload.get("name"):
        user.name = payload["name"].strip()
    if payload.get("password"):
        _validate_password_strength(payload["password"])
        user.hashed_password = get_password_hash(payload["password"])
    if "profile_image" in payload:
        user.profile_image = payload["profile_image"]

    return _commit_user(db, user)


def list_users(
    db: Session,
    *,
    role: Optional[str] = None,
    status: Optional[UserStatus] = None,
) -> List[models.User]:
    query = db.query(models.User)
    if role:
        query = query.filter(models.User.role == normalize_role(role))
    if status:
        query = query.filter(models.User.status == status)
    return query.order_by(models.User.created_at.desc()).all()


def list_trainers(db: Session) -> List[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.role == Role.TRAINER)
        .order_by(models.User.name.asc())
        .all()
    )


def authenticate_user(db: Session, *, email: str, password: str) -> models.User:
    """
    Password login. Only ACTIVE accounts get a token; other statuses get a
    specific message so the UI can explain why.
    """
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        raise AccessDenied("Incorrect email or password.")

    if user.status != UserStatus.ACTIVE:
        raise AccessDenied(_STATUS_LOGIN_MESSAGES.get(user.status, "Account is not active."))

    if password_needs_rehash(user.hashed_password):
        user.hashed_password = get_password_hash(password)

    user.last_login_at = datetime.utcnow()
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def issue_access_token_for_user(user: models.User) -> Tuple[str, int]:
    """
    Create a JWT access token for the user.

    Returns (token_string, expires_in_seconds).
    """
    expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user.id),
        "role": user.role.value,
    }
    token = create_access_token(data=payload, expires_delta=expires_delta)
    return token, int(expires_delta.total_seconds())
