# backend/formadb/apps/accounts/router_admin.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from formadb.database import get_db, get_read_db
from formadb.errors import AccessDenied, TrainingError, to_http_exception
from formadb.security import require_admin, require_roles, require_staff
from . import models, schemas, services
from .models import Role, UserStatus

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/users",
    response_model=List[schemas.UserRead],
    summary="List users (admin / manager)",
)
def list_users(
    role: Optional[str] = None,
    status_filter: Optional[UserStatus] = None,
    db: Session = Depends(get_read_db),
    current_user: models.User = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
):
    try:
        return services.list_users(db, role=role, status=status_filter)
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.get(
    "/formateurs",
    response_model=List[schemas.UserRead],
    summary="List trainers (staff only)",
)
def list_trainers(
    db: Session = Depends(get_read_db),
    current_user: models.User = Depends(require_staff),
):
    return services.list_trainers(db)


@router.post(
    "/users",
    response_model=schemas.UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user profile (admin only)",
)
def create_user(
    payload: schemas.AdminUserCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    try:
        return services.create_user_by_admin(db, payload)
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.put(
    "/users/{user_id}",
    response_model=schemas.UserRead,
    summary="Update a user profile, role or status (admin / manager)",
)
def update_user(
    user_id: str,
    payload: schemas.AdminUserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
):
    # Managers approve and suspend accounts but cannot hand out roles.
    if current_user.role != Role.ADMIN and payload.role is not None:
        raise to_http_exception(
            AccessDenied("Only admins may change roles.")
        )
    try:
        return services.admin_update_user(db, user_id, payload)
    except TrainingError as exc:
        raise to_http_exception(exc)
