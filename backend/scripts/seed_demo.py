from __future__ import annotations

from datetime import date, timedelta

from formadb.database import session_scope
from formadb.apps.accounts import models as account_models
from formadb.apps.accounts import schemas as account_schemas
from formadb.apps.accounts import services as account_services
from formadb.apps.training import models as training_models
from formadb.apps.training import schemas as training_schemas
from formadb.apps.training import services as training_services
from formadb.apps.training.attendance import mark_attendance

DEMO_PASSWORD = "password123"

STUDENTS = [
    ("Alice Student", "alice@formation.example.com"),
    ("Bob Student", "bob@formation.example.com"),
]

FORMATIONS = [
    ("Développement Web Fullstack", "Apprenez React, Node et les bases de données.", 40),
    ("Intelligence Artificielle", "Introduction au Machine Learning.", 30),
    ("Cyber-sécurité Maritime", "Protéger les infrastructures portuaires.", 25),
]


def _get_or_create_user(db, name: str, email: str, role: account_models.Role) -> account_models.User:
    user = account_services.get_user_by_email(db, email)
    if user:
        return user
    return account_services.create_user_by_admin(
        db,
        account_schemas.AdminUserCreate(
            name=name,
            email=email,
            password=DEMO_PASSWORD,
            role=role.value,
            status=account_models.UserStatus.ACTIVE,
        ),
    )


def _get_or_create_formation(db, title: str, description: str, hours: int, *, admin, trainer):
    formation = (
        db.query(training_models.Formation)
        .filter(training_models.Formation.title == title)
        .first()
    )
    if formation:
        return formation, False
    formation = training_services.create_formation(
        db,
        training_schemas.FormationCreate(
            title=title,
            description=description,
            duration_hours=hours,
            start_date=date.today(),
            default_trainer_id=trainer.id,
        ),
        created_by_user_id=admin.id,
    )
    return formation, True


def main() -> None:
    with session_scope() as db:
        admin = _get_or_create_user(db, "Demo Admin", "admin@formation.example.com", account_models.Role.ADMIN)
        trainer = _get_or_create_user(db, "Expert Formateur", "expert@formation.example.com", account_models.Role.TRAINER)
        students = [
            _get_or_create_user(db, name, email, account_models.Role.STUDENT) for name, email in STUDENTS
        ]

        for title, description, hours in FORMATIONS:
            formation, created = _get_or_create_formation(
                db, title, description, hours, admin=admin, trainer=trainer
            )
            if not created:
                print(f"[SKIP] Formation exists: {title}")
                continue

            for level in formation.levels:
                session = training_services.create_session(
                    db,
                    training_schemas.SessionCreate(
                        formation_id=formation.id,
                        level_id=level.id,
                        date=date.today() + timedelta(days=level.order - 2),
                        start_time="09:00",
                        end_time="12:00",
                    ),
                )
                # The first session seeds the cohort; later ones inherit it.
                if level.order == 1:
                    for student in students:
                        session.enrollments.append(
                            training_models.SessionParticipant(user_id=student.id, position=len(session.enrollments))
                        )
                    db.commit()
                if session.date < date.today():
                    for student in students:
                        mark_attendance(
                            db,
                            session.id,
                            student.id,
                            training_models.AttendanceStatus.PRESENT,
                            marked_by_user_id=trainer.id,
                        )
            print(f"[OK] Formation created: {title} ({formation.id})")

        print("Demo data ready. Password for every demo account:", DEMO_PASSWORD)


if __name__ == "__main__":
    main()
