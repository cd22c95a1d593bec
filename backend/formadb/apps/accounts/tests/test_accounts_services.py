from __future__ import annotations

import bcrypt
import pytest
from fastapi import HTTPException
from jose import jwt

from formadb import security
from formadb.apps.accounts import models as account_models
from formadb.apps.accounts import router_admin
from formadb.apps.accounts import schemas as account_schemas
from formadb.apps.accounts import services as account_services
from formadb.errors import AccessDenied, Conflict, InvalidArgument


def _create_user(
    db_session,
    *,
    email: str,
    role: account_models.Role = account_models.Role.STUDENT,
    status: account_models.UserStatus = account_models.UserStatus.ACTIVE,
    password: str = "secret123",
) -> account_models.User:
    user = account_models.User(
        name=email.split("@")[0].title(),
        email=email,
        role=role,
        status=status,
        hashed_password=security.get_password_hash(password),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.mark.parametrize(
    "label, expected",
    [
        ("formateur", account_models.Role.TRAINER),
        ("Responsable", account_models.Role.MANAGER),
        ("responsable", account_models.Role.MANAGER),
        ("Étudiant", account_models.Role.STUDENT),
        (" ADMIN ", account_models.Role.ADMIN),
    ],
)
def test_normalize_role_accepts_legacy_labels(label, expected):
    assert account_models.normalize_role(label) == expected


def test_normalize_role_rejects_unknown_label():
    with pytest.raises(InvalidArgument):
        account_models.normalize_role("pilot")


def test_signup_defaults_to_pending_manager(db_session):
    user = account_services.signup(
        db_session,
        account_schemas.SignupRequest(name="Nadia", email="Nadia@Example.com", password="secret123"),
    )

    assert user.role == account_models.Role.MANAGER
    assert user.status == account_models.UserStatus.PENDING
    assert user.email == "nadia@example.com"
    assert user.hashed_password != "secret123"


def test_signup_cannot_request_admin(db_session):
    with pytest.raises(InvalidArgument):
        account_services.signup(
            db_session,
            account_schemas.SignupRequest(
                name="Mallory", email="mallory@example.com", password="secret123", role="admin"
            ),
        )


def test_signup_rejects_duplicate_email(db_session):
    _create_user(db_session, email="taken@example.com")

    with pytest.raises(Conflict):
        account_services.signup(
            db_session,
            account_schemas.SignupRequest(name="Other", email="TAKEN@example.com", password="secret123"),
        )


def test_authenticate_only_allows_active_users(db_session):
    _create_user(db_session, email="pending@example.com", status=account_models.UserStatus.PENDING)
    active = _create_user(db_session, email="active@example.com")

    with pytest.raises(AccessDenied) as excinfo:
        account_services.authenticate_user(db_session, email="pending@example.com", password="secret123")
    assert "approval" in str(excinfo.value)

    with pytest.raises(AccessDenied):
        account_services.authenticate_user(db_session, email="active@example.com", password="wrong-password")

    user = account_services.authenticate_user(db_session, email="active@example.com", password="secret123")
    assert user.id == active.id
    assert user.last_login_at is not None


def test_legacy_bcrypt_hash_is_upgraded_on_login(db_session):
    user = _create_user(db_session, email="legacy@example.com")
    user.hashed_password = bcrypt.hashpw(b"secret123", bcrypt.gensalt()).decode()
    db_session.commit()

    account_services.authenticate_user(db_session, email="legacy@example.com", password="secret123")

    db_session.refresh(user)
    assert user.hashed_password.startswith("$argon2")


def test_access_token_carries_user_id_and_role(db_session):
    user = _create_user(db_session, email="token@example.com", role=account_models.Role.TRAINER)

    token, expires_in = account_services.issue_access_token_for_user(user)

    claims = jwt.decode(token, security.SECRET_KEY, algorithms=[security.JWT_ALGORITHM])
    assert claims["sub"] == user.id
    assert claims["role"] == "trainer"
    assert expires_in == security.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_list_users_filters_by_legacy_role_label(db_session):
    trainer = _create_user(db_session, email="trainer@example.com", role=account_models.Role.TRAINER)
    _create_user(db_session, email="student@example.com")

    users = account_services.list_users(db_session, role="formateur")

    assert [u.id for u in users] == [trainer.id]
    assert [u.id for u in account_services.list_trainers(db_session)] == [trainer.id]


def test_require_roles_lets_admin_through_and_blocks_others(db_session):
    admin = _create_user(db_session, email="admin@example.com", role=account_models.Role.ADMIN)
    student = _create_user(db_session, email="learner@example.com")
    trainer_only = security.require_roles("formateur")

    assert trainer_only(current_user=admin) is admin
    with pytest.raises(HTTPException) as excinfo:
        trainer_only(current_user=student)
    assert excinfo.value.status_code == 403


def test_manager_cannot_change_roles(db_session):
    manager = _create_user(db_session, email="manager@example.com", role=account_models.Role.MANAGER)
    subject = _create_user(db_session, email="subject@example.com", status=account_models.UserStatus.PENDING)

    with pytest.raises(HTTPException) as excinfo:
        router_admin.update_user(
            subject.id,
            account_schemas.AdminUserUpdate(role="admin"),
            db=db_session,
            current_user=manager,
        )
    assert excinfo.value.status_code == 403

    approved = router_admin.update_user(
        subject.id,
        account_schemas.AdminUserUpdate(status=account_models.UserStatus.ACTIVE),
        db=db_session,
        current_user=manager,
    )
    assert approved.status == account_models.UserStatus.ACTIVE
