"""
Lost-race paths: a second connection commits a competing row between the
service's read checks and its write, and the service must answer with a
typed error (or a clean retry) instead of a raw IntegrityError.
"""

from __future__ import annotations

from datetime import date

import pytest

from formadb.apps.accounts import models as account_models
from formadb.apps.training import attendance, certification, enrollment
from formadb.apps.training import models as training_models
from formadb.apps.training import schemas as training_schemas
from formadb.apps.training import services as training_services
from formadb.errors import AlreadyExists, CapacityExceeded, Conflict


def _create_user(db, email: str, role=account_models.Role.STUDENT) -> account_models.User:
    user = account_models.User(
        name=email.split("@")[0].title(),
        email=email,
        role=role,
        status=account_models.UserStatus.ACTIVE,
        hashed_password="hashed",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _schedule(db, formation, *, day: int, capacity: int = 30) -> training_models.TrainingSession:
    level = training_services.list_levels(db, formation.id)[0]
    return training_services.create_session(
        db,
        training_schemas.SessionCreate(
            formation_id=formation.id,
            level_id=level.id,
            date=date(2026, 6, day),
            start_time="09:00",
            end_time="12:00",
            max_participants=capacity,
        ),
    )


def _commit_elsewhere(session_factory, *rows) -> None:
    other = session_factory()
    try:
        other.add_all(rows)
        other.commit()
    finally:
        other.close()


def _participant_rows(db, session_id: str, user_id=None) -> int:
    query = db.query(training_models.SessionParticipant).filter(
        training_models.SessionParticipant.session_id == session_id
    )
    if user_id:
        query = query.filter(training_models.SessionParticipant.user_id == user_id)
    return query.count()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def formation(db):
    trainer = _create_user(db, "trainer@example.com", account_models.Role.TRAINER)
    return training_services.create_formation(
        db,
        training_schemas.FormationCreate(
            title="Menuiserie",
            description="Atelier",
            duration_hours=12,
            default_trainer_id=trainer.id,
        ),
        created_by_user_id=trainer.id,
    )


def _racing_next_position(monkeypatch, session_factory, rows_by_session):
    """Commit the queued competing row for a session just before its position is read."""
    original = enrollment._next_position

    def racing(db, session_id):
        row = rows_by_session.pop(session_id, None)
        if row is not None:
            _commit_elsewhere(session_factory, row)
        return original(db, session_id)

    monkeypatch.setattr(enrollment, "_next_position", racing)


def test_concurrent_duplicate_enrollment_is_a_conflict(db, session_factory, formation, monkeypatch):
    session = _schedule(db, formation, day=1)
    alice = _create_user(db, "alice@example.com")
    _racing_next_position(
        monkeypatch,
        session_factory,
        {session.id: training_models.SessionParticipant(session_id=session.id, user_id=alice.id, position=0)},
    )

    with pytest.raises(Conflict):
        enrollment.enroll_in_session(db, session.id, alice.id)

    assert _participant_rows(db, session.id, alice.id) == 1


def test_last_seat_taken_concurrently_raises_capacity_exceeded(db, session_factory, formation, monkeypatch):
    session = _schedule(db, formation, day=1, capacity=1)
    alice = _create_user(db, "alice@example.com")
    bob = _create_user(db, "bob@example.com")
    _racing_next_position(
        monkeypatch,
        session_factory,
        {session.id: training_models.SessionParticipant(session_id=session.id, user_id=bob.id, position=0)},
    )

    with pytest.raises(CapacityExceeded):
        enrollment.enroll_in_session(db, session.id, alice.id)

    assert _participant_rows(db, session.id) == 1
    assert not enrollment.is_enrolled(db, session.id, alice.id)


def test_bulk_enrollment_retries_after_losing_a_race(db, session_factory, formation, monkeypatch):
    first = _schedule(db, formation, day=1)
    second = _schedule(db, formation, day=8)
    alice = _create_user(db, "alice@example.com")
    _racing_next_position(
        monkeypatch,
        session_factory,
        {first.id: training_models.SessionParticipant(session_id=first.id, user_id=alice.id, position=0)},
    )

    result = enrollment.enroll_across_formation(db, formation.id, alice.id)

    assert result.sessions_touched == 2
    assert result.newly_enrolled == 1
    assert _participant_rows(db, first.id, alice.id) == 1
    assert _participant_rows(db, second.id, alice.id) == 1


def test_bulk_enrollment_gives_up_with_conflict(db, session_factory, formation, monkeypatch):
    first = _schedule(db, formation, day=1)
    second = _schedule(db, formation, day=8)
    alice = _create_user(db, "alice@example.com")
    # One lost race per pass exhausts the retries.
    _racing_next_position(
        monkeypatch,
        session_factory,
        {
            first.id: training_models.SessionParticipant(session_id=first.id, user_id=alice.id, position=0),
            second.id: training_models.SessionParticipant(session_id=second.id, user_id=alice.id, position=0),
        },
    )

    with pytest.raises(Conflict):
        enrollment.enroll_across_formation(db, formation.id, alice.id)

    assert _participant_rows(db, first.id, alice.id) == 1
    assert _participant_rows(db, second.id, alice.id) == 1


def test_concurrent_first_mark_becomes_an_update(db, session_factory, formation, monkeypatch):
    session = _schedule(db, formation, day=1)
    student = _create_user(db, "student@example.com")
    original = attendance._find
    calls = []

    def racing(db_, session_id, participant_id):
        found = original(db_, session_id, participant_id)
        if not calls:
            _commit_elsewhere(
                session_factory,
                training_models.Attendance(
                    session_id=session_id,
                    participant_id=participant_id,
                    status=training_models.AttendanceStatus.ABSENT,
                ),
            )
        calls.append(session_id)
        return found

    monkeypatch.setattr(attendance, "_find", racing)

    record = attendance.mark_attendance(db, session.id, student.id, "present")

    assert record.status == training_models.AttendanceStatus.PRESENT
    assert db.query(training_models.Attendance).count() == 1
    assert len(calls) == 2


def test_concurrent_certificate_issue_raises_already_exists(db, session_factory, formation, monkeypatch):
    student = _create_user(db, "student@example.com")
    original = certification.generate_certificate_code
    competing = {}

    def racing(now=None):
        if not competing:
            winner = training_models.Certificate(
                user_id=student.id,
                formation_id=formation.id,
                certificate_code=original(),
            )
            competing["code"] = winner.certificate_code
            _commit_elsewhere(session_factory, winner)
        return original(now)

    monkeypatch.setattr(certification, "generate_certificate_code", racing)

    with pytest.raises(AlreadyExists) as excinfo:
        certification.issue_certificate(db, student.id, formation.id)

    assert excinfo.value.payload.certificate_code == competing["code"]
    assert db.query(training_models.Certificate).count() == 1
