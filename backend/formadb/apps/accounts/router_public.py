# backend/formadb/apps/accounts/router_public.py

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from formadb.database import get_db
from formadb.errors import TrainingError, to_http_exception
from formadb.security import get_current_active_user, get_current_user
from . import models, schemas, services

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=schemas.UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request an account (pending until an admin approves it)",
)
def signup(
    payload: schemas.SignupRequest,
    db: Session = Depends(get_db),
):
    try:
        return services.signup(db, payload)
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.post(
    "/login",
    response_model=schemas.Token,
    summary="Login with email and password",
)
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
):
    try:
        user = services.authenticate_user(db, email=payload.email, password=payload.password)
    except TrainingError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        )

    token, expires_in = services.issue_access_token_for_user(user)
    return schemas.Token(access_token=token, expires_in=expires_in, user=user)


@router.get(
    "/me",
    response_model=schemas.UserRead,
    summary="Current user profile",
)
def read_me(current_user: models.User = Depends(get_current_user)):
    return current_user


@router.put(
    "/me",
    response_model=schemas.UserRead,
    summary="Update own profile",
)
def update_me(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_active_user),
):
    try:
        return services.update_profile(db, current_user, payload)
    except TrainingError as exc:
        raise to_http_exception(exc)
