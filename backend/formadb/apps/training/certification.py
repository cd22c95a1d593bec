# backend/formadb/apps/training/certification.py
"""
Certification gate: eligibility is policy, issuance is mechanism.

`check_eligibility` is a pure read. `issue_certificate` does not re-check it,
so administrators can issue an override certificate; routers that want the
policy enforced call `check_eligibility` first.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import AlreadyExists, Conflict, NotFound
from ...utils.identifiers import generate_certificate_code
from . import models, schemas
from .services import ensure_user, get_formation

logger = logging.getLogger(__name__)

_CODE_RETRIES = 3

STATE_INELIGIBLE = "ineligible"
STATE_ELIGIBLE = "eligible"
STATE_CERTIFIED = "certified"


def check_eligibility(db: Session, user_id: str, formation_id: str) -> schemas.EligibilityResult:
    """
    Eligible when the formation has levels, has sessions, and the user has a
    present/late mark on every one of its sessions.

    Levels are only checked for existence; per-level validation is not
    re-applied here.
    """
    level_count = (
        db.query(func.count(models.Level.id))
        .filter(models.Level.formation_id == formation_id)
        .scalar()
        or 0
    )
    if level_count == 0:
        return schemas.EligibilityResult(
            eligible=False,
            reason="The formation has no levels defined yet.",
        )

    session_ids = {
        row[0]
        for row in db.query(models.TrainingSession.id)
        .filter(models.TrainingSession.formation_id == formation_id)
        .all()
    }
    if not session_ids:
        return schemas.EligibilityResult(
            eligible=False,
            reason="The formation has no sessions.",
            total_sessions=0,
            attended_count=0,
        )

    attended_ids = {
        row[0]
        for row in db.query(models.Attendance.session_id)
        .filter(
            models.Attendance.participant_id == user_id,
            models.Attendance.session_id.in_(list(session_ids)),
            models.Attendance.status.in_(list(models.ATTENDED_STATUSES)),
        )
        .all()
    }
    if not session_ids <= attended_ids:
        return schemas.EligibilityResult(
            eligible=False,
            reason="All sessions must be attended.",
            total_sessions=len(session_ids),
            attended_count=len(attended_ids),
        )

    return schemas.EligibilityResult(
        eligible=True,
        total_sessions=len(session_ids),
        attended_count=len(attended_ids),
    )


def get_certificate_for(db: Session, user_id: str, formation_id: str) -> Optional[models.Certificate]:
    return (
        db.query(models.Certificate)
        .filter(
            models.Certificate.user_id == user_id,
            models.Certificate.formation_id == formation_id,
        )
        .first()
    )


def get_certificate_by_code(db: Session, certificate_code: str) -> models.Certificate:
    certificate = (
        db.query(models.Certificate)
        .filter(models.Certificate.certificate_code == certificate_code)
        .first()
    )
    if not certificate:
        raise NotFound("Certificate not found.")
    return certificate


def list_certificates(db: Session, *, user_id: Optional[str] = None) -> List[models.Certificate]:
    query = db.query(models.Certificate)
    if user_id:
        query = query.filter(models.Certificate.user_id == user_id)
    return query.order_by(models.Certificate.issued_at.desc()).all()


def certification_status(db: Session, user_id: str, formation_id: str) -> schemas.CertificationStatus:
    """Where the (user, formation) pair sits: ineligible, eligible or certified."""
    eligibility = check_eligibility(db, user_id, formation_id)
    certificate = get_certificate_for(db, user_id, formation_id)
    if certificate:
        state = STATE_CERTIFIED
    elif eligibility.eligible:
        state = STATE_ELIGIBLE
    else:
        state = STATE_INELIGIBLE
    return schemas.CertificationStatus(
        user_id=user_id,
        formation_id=formation_id,
        state=state,
        eligibility=eligibility,
        certificate_code=certificate.certificate_code if certificate else None,
    )


def issue_certificate(
    db: Session,
    user_id: str,
    formation_id: str,
    *,
    issued_by_user_id: Optional[str] = None,
) -> models.Certificate:
    """
    Create the certificate for (user, formation).

    Raises AlreadyExists with the stored certificate as payload when one was
    issued before, including when a concurrent request wins the race.
    """
    ensure_user(db, user_id, "User")
    get_formation(db, formation_id)

    existing = get_certificate_for(db, user_id, formation_id)
    if existing:
        logger.info(
            "Duplicate certificate request rejected",
            extra={"user_id": user_id, "formation_id": formation_id},
        )
        raise AlreadyExists("Certificate already issued.", payload=existing)

    for _ in range(_CODE_RETRIES):
        certificate = models.Certificate(
            user_id=user_id,
            formation_id=formation_id,
            certificate_code=generate_certificate_code(),
            issued_by_user_id=issued_by_user_id,
        )
        db.add(certificate)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = get_certificate_for(db, user_id, formation_id)
            if existing:
                raise AlreadyExists("Certificate already issued.", payload=existing)
            # Certificate code collision; draw a new one.
            continue

        db.refresh(certificate)
        logger.info(
            "Certificate issued",
            extra={
                "certificate_code": certificate.certificate_code,
                "user_id": user_id,
                "formation_id": formation_id,
                "issued_by": issued_by_user_id,
            },
        )
        return certificate

    raise Conflict("Could not allocate a unique certificate code, please retry.")
