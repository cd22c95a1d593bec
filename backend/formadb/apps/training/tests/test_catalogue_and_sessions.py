from __future__ import annotations

from datetime import date

import pytest

from formadb.apps.accounts import models as account_models
from formadb.apps.training import models as training_models
from formadb.apps.training import schemas as training_schemas
from formadb.apps.training import services as training_services
from formadb.apps.training.palette import formation_color, formation_pattern, hash_seed, palette_index
from formadb.errors import Conflict, InvalidArgument, NotFound


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


def _create_formation(db_session, *, trainer=None, title: str = "Robotique") -> training_models.Formation:
    return training_services.create_formation(
        db_session,
        training_schemas.FormationCreate(
            title=title,
            description="Initiation",
            duration_hours=12,
            start_date=date(2026, 3, 2),
            default_trainer_id=trainer.id if trainer else None,
        ),
        created_by_user_id=None,
    )


def _create_session(db_session, formation, level, *, day: int, trainer_id=None) -> training_models.TrainingSession:
    return training_services.create_session(
        db_session,
        training_schemas.SessionCreate(
            formation_id=formation.id,
            level_id=level.id,
            date=date(2026, 3, day),
            start_time="09:00",
            end_time="12:00",
            trainer_id=trainer_id,
        ),
    )


def test_palette_hash_is_the_31_polynomial():
    assert hash_seed("") == 0
    assert hash_seed("ab") == 97 * 31 + 98
    assert palette_index("ab", 20) == 5
    # Long seeds overflow 32 bits and must stay non-negative.
    assert hash_seed("FRM-ZZZZZZZZZZZZZZZZZZZZ") >= 0


def test_create_formation_adds_four_levels_and_stable_palette(db_session):
    formation = _create_formation(db_session)

    levels = training_services.list_levels(db_session, formation.id)
    assert [level.order for level in levels] == [1, 2, 3, 4]
    assert [level.title for level in levels] == ["Level 1", "Level 2", "Level 3", "Level 4"]
    assert formation.color == formation_color(formation.id)
    assert formation.pattern == formation_pattern(formation.id)
    assert formation.id.startswith("FRM-")


def test_duplicate_level_order_is_rejected(db_session):
    formation = _create_formation(db_session)

    with pytest.raises(Conflict):
        training_services.create_level(db_session, formation.id, training_schemas.LevelCreate(order=2))

    extra = training_services.create_level(db_session, formation.id, training_schemas.LevelCreate(order=5))
    assert extra.title == "Level 5"


def test_session_requires_a_trainer(db_session):
    formation = _create_formation(db_session)
    level = training_services.list_levels(db_session, formation.id)[0]

    with pytest.raises(InvalidArgument):
        _create_session(db_session, formation, level, day=3)


def test_session_falls_back_to_default_trainer(db_session):
    trainer = _create_user(db_session, "trainer@example.com", account_models.Role.TRAINER)
    formation = _create_formation(db_session, trainer=trainer)
    level = training_services.list_levels(db_session, formation.id)[0]

    session = _create_session(db_session, formation, level, day=3)

    assert session.trainer_id == trainer.id
    assert session.max_participants == training_models.DEFAULT_MAX_PARTICIPANTS


def test_session_level_must_belong_to_formation(db_session):
    trainer = _create_user(db_session, "trainer@example.com", account_models.Role.TRAINER)
    formation = _create_formation(db_session, trainer=trainer)
    other = _create_formation(db_session, trainer=trainer, title="Chimie")
    foreign_level = training_services.list_levels(db_session, other.id)[0]

    with pytest.raises(InvalidArgument):
        _create_session(db_session, formation, foreign_level, day=3)

    with pytest.raises(NotFound):
        training_services.get_session(db_session, "SES-MISSING")


def test_new_session_inherits_participants_of_latest_session(db_session):
    trainer = _create_user(db_session, "trainer@example.com", account_models.Role.TRAINER)
    alice = _create_user(db_session, "alice@example.com")
    bob = _create_user(db_session, "bob@example.com")
    carol = _create_user(db_session, "carol@example.com")
    formation = _create_formation(db_session, trainer=trainer)
    level_1, level_2 = training_services.list_levels(db_session, formation.id)[:2]

    first = _create_session(db_session, formation, level_1, day=3)
    assert first.participant_ids == []
    for user in (alice, bob):
        first.enrollments.append(
            training_models.SessionParticipant(user_id=user.id, position=len(first.enrollments))
        )
    db_session.commit()

    second = _create_session(db_session, formation, level_2, day=10)
    assert second.participant_ids == [alice.id, bob.id]
    assert second.sequence == first.sequence + 1

    # Later changes to the older session do not propagate.
    first.enrollments.append(training_models.SessionParticipant(user_id=carol.id, position=2))
    db_session.commit()
    db_session.refresh(second)
    assert carol.id not in second.participant_ids

    # The newest session is the source, not the first one.
    third = _create_session(db_session, formation, level_1, day=1)
    assert third.participant_ids == [alice.id, bob.id]
    assert third.sequence == 3


def test_delete_level_cascades_to_sessions_and_marks(db_session):
    trainer = _create_user(db_session, "trainer@example.com", account_models.Role.TRAINER)
    student = _create_user(db_session, "student@example.com")
    formation = _create_formation(db_session, trainer=trainer)
    level_1, level_2 = training_services.list_levels(db_session, formation.id)[:2]
    doomed = _create_session(db_session, formation, level_1, day=3)
    kept = _create_session(db_session, formation, level_2, day=4)
    db_session.add(
        training_models.Attendance(
            session_id=doomed.id,
            participant_id=student.id,
            status=training_models.AttendanceStatus.PRESENT,
        )
    )
    db_session.commit()

    removed = training_services.delete_level(db_session, level_1.id)

    assert removed == 1
    remaining = db_session.query(training_models.TrainingSession.id).all()
    assert [row[0] for row in remaining] == [kept.id]
    assert db_session.query(training_models.Attendance).count() == 0
    assert [level.order for level in training_services.list_levels(db_session, formation.id)] == [2, 3, 4]


def test_list_sessions_most_recent_date_first(db_session):
    trainer = _create_user(db_session, "trainer@example.com", account_models.Role.TRAINER)
    formation = _create_formation(db_session, trainer=trainer)
    level = training_services.list_levels(db_session, formation.id)[0]
    early = _create_session(db_session, formation, level, day=2)
    late = _create_session(db_session, formation, level, day=20)

    listed = training_services.list_sessions(db_session, formation_id=formation.id)

    assert [s.id for s in listed] == [late.id, early.id]
    assert training_services.count_sessions(db_session, formation.id) == 2
