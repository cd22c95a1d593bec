from __future__ import annotations

from datetime import date

import pytest

from formadb.apps.accounts import models as account_models
from formadb.apps.training import attendance, progress
from formadb.apps.training import models as training_models
from formadb.apps.training import schemas as training_schemas
from formadb.apps.training import services as training_services


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
            title="Informatique",
            description="Programmation",
            duration_hours=20,
            default_trainer_id=trainer.id,
        ),
        created_by_user_id=None,
    )


def _schedule(db_session, formation, *, day: int, level_index: int = 0):
    level = training_services.list_levels(db_session, formation.id)[level_index]
    return training_services.create_session(
        db_session,
        training_schemas.SessionCreate(
            formation_id=formation.id,
            level_id=level.id,
            date=date(2026, 6, day),
            start_time="09:00",
            end_time="10:00",
        ),
    )


def _enroll(db_session, session, user):
    session.enrollments.append(
        training_models.SessionParticipant(user_id=user.id, position=len(session.enrollments))
    )
    db_session.commit()


@pytest.mark.parametrize(
    "part, whole, expected",
    [(0, 0, 0), (5, 0, 0), (1, 2, 50), (1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 3, 100)],
)
def test_percent_rounds_half_up(part, whole, expected):
    assert progress.percent(part, whole) == expected


def test_one_of_two_sessions_attended_is_half_way(db_session, formation):
    student = _create_user(db_session, "student@example.com")
    first = _schedule(db_session, formation, day=1)
    second = _schedule(db_session, formation, day=8)
    attendance.mark_attendance(db_session, first.id, student.id, "present")
    attendance.mark_attendance(db_session, second.id, student.id, "absent")

    result = progress.formation_progress(db_session, formation.id, student.id)

    assert result.total_sessions == 2
    assert result.attended_sessions == 1
    assert result.missed_sessions == 1
    assert result.remaining_sessions == 0
    assert result.progress_percent == 50


def test_late_counts_as_attended(db_session, formation):
    student = _create_user(db_session, "student@example.com")
    session = _schedule(db_session, formation, day=1)
    _schedule(db_session, formation, day=8)
    attendance.mark_attendance(db_session, session.id, student.id, "late")

    result = progress.formation_progress(db_session, formation.id, student.id)

    assert result.attended_sessions == 1
    assert result.remaining_sessions == 1


def test_formation_without_sessions_reports_zero(db_session, formation):
    result = progress.formation_progress(db_session, formation.id, "USR-NOBODY")

    assert result.total_sessions == 0
    assert result.progress_percent == 0


def test_level_without_sessions_is_never_validated(db_session, formation):
    student = _create_user(db_session, "student@example.com")
    first = _schedule(db_session, formation, day=1, level_index=0)
    second = _schedule(db_session, formation, day=8, level_index=1)
    _schedule(db_session, formation, day=15, level_index=1)
    attendance.mark_attendance(db_session, first.id, student.id, "present")
    attendance.mark_attendance(db_session, second.id, student.id, "present")

    levels = progress.level_progress(db_session, formation.id, student.id)

    assert [level.order for level in levels] == [1, 2, 3, 4]
    assert [level.status for level in levels] == ["validated", "in_progress", "locked", "locked"]
    assert [level.validated for level in levels] == [True, False, False, False]
    assert levels[1].remaining_sessions == 1


@pytest.mark.parametrize(
    "total, attended, expected",
    [(0, 0, "locked"), (2, 0, "pending"), (2, 1, "in_progress"), (2, 2, "validated")],
)
def test_level_status(total, attended, expected):
    assert progress.level_status(total, attended) == expected


def test_stats_only_count_enrolled_sessions(db_session, formation):
    alice = _create_user(db_session, "alice@example.com")
    bob = _create_user(db_session, "bob@example.com")
    first = _schedule(db_session, formation, day=1)
    _enroll(db_session, first, alice)
    second = _schedule(db_session, formation, day=8)  # inherits alice
    _enroll(db_session, second, bob)
    attendance.mark_attendance(db_session, first.id, alice.id, "present")
    # Bob is not enrolled in the first session, so this mark is ignored.
    attendance.mark_attendance(db_session, first.id, bob.id, "present")
    attendance.mark_attendance(db_session, second.id, bob.id, "present")

    stats = progress.formation_stats_for_all_enrolled(db_session, formation.id)

    assert [s.user_id for s in stats] == [alice.id, bob.id]
    assert (stats[0].attended, stats[0].total, stats[0].progress_percent) == (1, 2, 50)
    assert (stats[1].attended, stats[1].total, stats[1].progress_percent) == (1, 1, 100)
    assert stats[0].email == "alice@example.com"


def test_stats_empty_without_enrollments(db_session, formation):
    _schedule(db_session, formation, day=1)

    assert progress.formation_stats_for_all_enrolled(db_session, formation.id) == []
