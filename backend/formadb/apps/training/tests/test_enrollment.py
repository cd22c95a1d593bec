from __future__ import annotations

from datetime import date

import pytest

from formadb.apps.accounts import models as account_models
from formadb.apps.training import enrollment
from formadb.apps.training import models as training_models
from formadb.apps.training import schemas as training_schemas
from formadb.apps.training import services as training_services
from formadb.errors import CapacityExceeded, Conflict, NotEnrolled, NotFound


def _create_user(db_session, email: str, role=account_models.Role.STUDENT) -> account_models.User:
    user = account_models.User(
        name=email.split("@")[0].title(),
        email=email,
        role=role,
        status=account_models.UserStatus.ACTIVE,
        hashed_password="hashed",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def formation(db_session):
    trainer = _create_user(db_session, "trainer@example.com", account_models.Role.TRAINER)
    return training_services.create_formation(
        db_session,
        training_schemas.FormationCreate(
            title="Robotique",
            description="Initiation",
            duration_hours=8,
            default_trainer_id=trainer.id,
        ),
        created_by_user_id=None,
    )


def _schedule(db_session, formation, *, day: int, capacity: int = 30) -> training_models.TrainingSession:
    level = training_services.list_levels(db_session, formation.id)[0]
    return training_services.create_session(
        db_session,
        training_schemas.SessionCreate(
            formation_id=formation.id,
            level_id=level.id,
            date=date(2026, 4, day),
            start_time="14:00",
            end_time="16:00",
            max_participants=capacity,
        ),
    )


def _enrollment_rows(db_session, session_id: str) -> int:
    return (
        db_session.query(training_models.SessionParticipant)
        .filter(training_models.SessionParticipant.session_id == session_id)
        .count()
    )


def test_enroll_appends_user_in_order(db_session, formation):
    session = _schedule(db_session, formation, day=1)
    alice = _create_user(db_session, "alice@example.com")
    bob = _create_user(db_session, "bob@example.com")

    enrollment.enroll_in_session(db_session, session.id, alice.id)
    updated = enrollment.enroll_in_session(db_session, session.id, bob.id)

    assert updated.participant_ids == [alice.id, bob.id]
    assert enrollment.is_enrolled(db_session, session.id, bob.id)


def test_enroll_twice_is_a_conflict(db_session, formation):
    session = _schedule(db_session, formation, day=1)
    alice = _create_user(db_session, "alice@example.com")
    enrollment.enroll_in_session(db_session, session.id, alice.id)

    with pytest.raises(Conflict):
        enrollment.enroll_in_session(db_session, session.id, alice.id)

    assert _enrollment_rows(db_session, session.id) == 1


def test_full_session_rejects_enrollment(db_session, formation):
    session = _schedule(db_session, formation, day=1, capacity=1)
    alice = _create_user(db_session, "alice@example.com")
    bob = _create_user(db_session, "bob@example.com")
    enrollment.enroll_in_session(db_session, session.id, alice.id)

    with pytest.raises(CapacityExceeded):
        enrollment.enroll_in_session(db_session, session.id, bob.id)

    assert _enrollment_rows(db_session, session.id) == 1
    assert not enrollment.is_enrolled(db_session, session.id, bob.id)


def test_enroll_unknown_session_is_not_found(db_session):
    alice = _create_user(db_session, "alice@example.com")

    with pytest.raises(NotFound, match="Session"):
        enrollment.enroll_in_session(db_session, "SES-MISSING", alice.id)


def test_enroll_unknown_user_is_not_found(db_session, formation):
    session = _schedule(db_session, formation, day=1)

    with pytest.raises(NotFound, match="User"):
        enrollment.enroll_in_session(db_session, session.id, "USR-MISSING")
    with pytest.raises(NotFound, match="User"):
        enrollment.enroll_across_formation(db_session, formation.id, "USR-MISSING")

    assert _enrollment_rows(db_session, session.id) == 0


def test_unenroll_requires_membership(db_session, formation):
    session = _schedule(db_session, formation, day=1)
    alice = _create_user(db_session, "alice@example.com")

    with pytest.raises(NotEnrolled):
        enrollment.unenroll_from_session(db_session, session.id, alice.id)

    enrollment.enroll_in_session(db_session, session.id, alice.id)
    updated = enrollment.unenroll_from_session(db_session, session.id, alice.id)

    assert updated.participant_ids == []
    assert _enrollment_rows(db_session, session.id) == 0


def test_bulk_enrollment_is_idempotent(db_session, formation):
    first = _schedule(db_session, formation, day=1)
    second = _schedule(db_session, formation, day=8)
    alice = _create_user(db_session, "alice@example.com")
    enrollment.enroll_in_session(db_session, second.id, alice.id)

    result = enrollment.enroll_across_formation(db_session, formation.id, alice.id)

    assert result.sessions_touched == 2
    assert result.newly_enrolled == 1
    assert _enrollment_rows(db_session, first.id) == 1
    assert _enrollment_rows(db_session, second.id) == 1

    again = enrollment.enroll_across_formation(db_session, formation.id, alice.id)
    assert again.sessions_touched == 2
    assert again.newly_enrolled == 0


def test_bulk_enrollment_needs_sessions(db_session, formation):
    alice = _create_user(db_session, "alice@example.com")

    with pytest.raises(NotFound):
        enrollment.enroll_across_formation(db_session, formation.id, alice.id)


def test_bulk_enrollment_ignores_capacity_by_default(db_session, formation):
    session = _schedule(db_session, formation, day=1, capacity=1)
    alice = _create_user(db_session, "alice@example.com")
    bob = _create_user(db_session, "bob@example.com")
    enrollment.enroll_in_session(db_session, session.id, alice.id)

    result = enrollment.enroll_across_formation(
        db_session, formation.id, bob.id, enforce_capacity=False
    )

    assert result.newly_enrolled == 1
    assert _enrollment_rows(db_session, session.id) == 2


def test_bulk_enrollment_can_skip_full_sessions(db_session, formation):
    full = _schedule(db_session, formation, day=1, capacity=1)
    alice = _create_user(db_session, "alice@example.com")
    enrollment.enroll_in_session(db_session, full.id, alice.id)
    # Created after alice joined, so it inherits her.
    open_session = _schedule(db_session, formation, day=8, capacity=5)
    bob = _create_user(db_session, "bob@example.com")

    result = enrollment.enroll_across_formation(
        db_session, formation.id, bob.id, enforce_capacity=True
    )

    assert result.skipped_full == 1
    assert result.newly_enrolled == 1
    assert enrollment.is_enrolled(db_session, open_session.id, bob.id)
    assert not enrollment.is_enrolled(db_session, full.id, bob.id)
