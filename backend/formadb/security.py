# backend/formadb/security.py
"""
Authentication and role checks.

Passwords are stored as Argon2id hashes; bcrypt hashes carried over from
imported accounts still verify and are upgraded on the next login (see
`accounts.services.authenticate_user`). Access tokens are HS256 JWTs whose
`sub` is the user id and `role` the canonical role value.

Authorisation happens here and in the routers; training services trust the
caller to have checked the actor's role.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta
from typing import Callable, FrozenSet, Optional, Union

import bcrypt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .database import get_db
from .errors import InvalidArgument
from formadb.apps.accounts import models as account_models
from formadb.apps.accounts.models import Role, normalize_role


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


# Override SECRET_KEY in every real deployment.
SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = _int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 1440)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

_argon2 = PasswordHasher(
    time_cost=_int_env("ARGON2_TIME_COST", 3),
    memory_cost=_int_env("ARGON2_MEMORY_COST", 65536),  # KiB
    parallelism=_int_env("ARGON2_PARALLELISM", 2),
)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


# ---------------------------------------------------------------------------
# PASSWORDS
# ---------------------------------------------------------------------------


def get_password_hash(password: str) -> str:
    return _argon2.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not plain_password or not hashed_password:
        return False

    if hashed_password.startswith("$argon2"):
        try:
            return _argon2.verify(hashed_password, plain_password)
        except (VerifyMismatchError, VerificationError, InvalidHash):
            return False

    if hashed_password.startswith(_BCRYPT_PREFIXES):
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            return False

    return False


def password_needs_rehash(hashed_password: str) -> bool:
    """True for legacy (non-Argon2) hashes and Argon2 hashes with outdated parameters."""
    if not hashed_password.startswith("$argon2"):
        return True
    return _argon2.check_needs_rehash(hashed_password)


# ---------------------------------------------------------------------------
# TOKENS
# ---------------------------------------------------------------------------


def create_access_token(*, data: dict, expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": datetime.utcnow() + lifetime}
    return jwt.encode(claims, SECRET_KEY, algorithm=JWT_ALGORITHM)


def _unauthorised() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_subject(token: str) -> str:
    """Return the `sub` claim of a valid token or raise 401."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise _unauthorised()
    subject = claims.get("sub")
    if not subject:
        raise _unauthorised()
    return str(subject)


# ---------------------------------------------------------------------------
# DEPENDENCIES
# ---------------------------------------------------------------------------


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> account_models.User:
    user_id = decode_subject(token)
    user = db.query(account_models.User).filter(account_models.User.id == user_id).first()
    if user is None:
        raise _unauthorised()
    return user


def get_current_active_user(
    current_user: account_models.User = Depends(get_current_user),
) -> account_models.User:
    # A token issued before suspension stays valid; the status check catches it.
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is not active",
        )
    return current_user


def require_roles(
    *allowed_roles: Union[Role, str],
) -> Callable[[account_models.User], account_models.User]:
    """
    Dependency factory: the current user must hold one of `allowed_roles`.

    Legacy labels ("formateur", "responsable", ...) are accepted. ADMIN
    always passes.

        @router.post(...)
        def endpoint(current_user: User = Depends(require_roles("formateur"))):
            ...
    """
    try:
        accepted: FrozenSet[Role] = frozenset(normalize_role(r) for r in allowed_roles) | {Role.ADMIN}
    except InvalidArgument as exc:
        raise ValueError(f"require_roles(): {exc}")

    def dependency(
        current_user: account_models.User = Depends(get_current_active_user),
    ) -> account_models.User:
        if current_user.role not in accepted:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this operation",
            )
        return current_user

    return dependency


require_admin = require_roles(Role.ADMIN)
require_staff = require_roles(Role.TRAINER, Role.MANAGER)
