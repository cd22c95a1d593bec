from __future__ import annotations

from datetime import date, datetime

import pytest
from fastapi import HTTPException

from formadb.apps.accounts import models as account_models
from formadb.apps.training import attendance, certification, dashboard, router_student
from formadb.apps.training import models as training_models
from formadb.apps.training import schemas as training_schemas
from formadb.apps.training import services as training_services
from formadb.apps.training.pdf_renderer import (
    certificate_filename,
    format_french_date,
    render_certificate_pdf,
)


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
def trainer(db_session):
    return _create_user(db_session, "trainer@example.com", account_models.Role.TRAINER)


@pytest.fixture()
def formation(db_session, trainer):
    return training_services.create_formation(
        db_session,
        training_schemas.FormationCreate(
            title="Robotique",
            description="Capteurs et moteurs",
            duration_hours=16,
            default_trainer_id=trainer.id,
        ),
        created_by_user_id=None,
    )


def _schedule(db_session, formation, when: date, *, level_index: int = 0):
    level = training_services.list_levels(db_session, formation.id)[level_index]
    return training_services.create_session(
        db_session,
        training_schemas.SessionCreate(
            formation_id=formation.id,
            level_id=level.id,
            date=when,
            start_time="09:00",
            end_time="11:00",
        ),
    )


def _enroll(db_session, session, user):
    session.enrollments.append(
        training_models.SessionParticipant(user_id=user.id, position=len(session.enrollments))
    )
    db_session.commit()


def test_dashboard_summarises_formations_and_sessions(db_session, formation):
    student = _create_user(db_session, "student@example.com")
    past = _schedule(db_session, formation, date(2026, 3, 2))
    _enroll(db_session, past, student)
    missed = _schedule(db_session, formation, date(2026, 3, 9), level_index=1)
    upcoming = _schedule(db_session, formation, date(2026, 3, 30), level_index=1)
    attendance.mark_attendance(db_session, past.id, student.id, "present")
    attendance.mark_attendance(db_session, missed.id, student.id, "absent")

    board = dashboard.student_dashboard(db_session, student.id, today=date(2026, 3, 15))

    assert board.stats.total_formations == 1
    assert board.stats.total_sessions_attended == 1
    assert board.stats.total_missed_sessions == 1

    card = board.formations[0]
    assert card.id == formation.id
    assert card.color == formation.color
    assert card.progress_percent == 33
    assert [s.attendance_status for s in card.sessions] == ["present", "absent", "pending"]
    assert card.sessions[0].title == "Level 1"
    assert [level.status for level in card.levels][:2] == ["validated", "pending"]
    assert card.certificate_code is None

    assert [s.id for s in board.upcoming_sessions] == [upcoming.id]
    assert board.upcoming_sessions[0].trainer_name == "Trainer"
    assert [s.id for s in board.missed_sessions] == [missed.id]


def test_upcoming_sessions_are_capped_and_sorted(db_session, formation):
    student = _create_user(db_session, "student@example.com")
    first = _schedule(db_session, formation, date(2026, 4, 20))
    _enroll(db_session, first, student)
    for day in (13, 6, 27, 2, 9, 16):
        _schedule(db_session, formation, date(2026, 4, day))

    upcoming = dashboard.upcoming_sessions(db_session, student.id, today=date(2026, 4, 1))

    assert len(upcoming) == dashboard.UPCOMING_LIMIT
    assert [s.date.day for s in upcoming] == [2, 6, 9, 13, 16]


def test_dashboard_for_user_without_enrollments_is_empty(db_session):
    student = _create_user(db_session, "student@example.com")

    board = dashboard.student_dashboard(db_session, student.id, today=date(2026, 1, 1))

    assert board.formations == []
    assert board.upcoming_sessions == []
    assert board.stats.total_formations == 0


def test_french_date_and_filename():
    assert format_french_date(datetime(2026, 3, 3)) == "3 mars 2026"
    assert format_french_date(datetime(2026, 8, 15)) == "15 août 2026"
    assert certificate_filename("CERT-20260303-ABC") == "Certificat-CERT-20260303-ABC.pdf"


def test_render_certificate_pdf_returns_pdf_bytes():
    certificate = training_models.Certificate(
        user_id="USR-1",
        formation_id="FRM-1",
        certificate_code="CERT-20260303-0123456789AB",
        issued_at=datetime(2026, 3, 3, 10, 0),
    )

    content = render_certificate_pdf(certificate, holder_name="Amira Ben Salah", formation_title="Robotique")

    assert content.startswith(b"%PDF")
    assert len(content) > 1000


def test_student_download_requires_a_certificate(db_session, formation):
    student = _create_user(db_session, "student@example.com")

    with pytest.raises(HTTPException) as excinfo:
        router_student.download_certificate(formation.id, db=db_session, current_user=student)
    assert excinfo.value.status_code == 404

    issued = certification.issue_certificate(db_session, student.id, formation.id)
    response = router_student.download_certificate(formation.id, db=db_session, current_user=student)

    assert response.media_type == "application/pdf"
    assert response.body.startswith(b"%PDF")
    assert f'filename="Certificat-{issued.certificate_code}.pdf"' in response.headers["content-disposition"]
