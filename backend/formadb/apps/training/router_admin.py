# backend/formadb/apps/training/router_admin.py
"""
Administrative training endpoints: attendance history and certification.

The eligibility check and the issuance are separate calls. `generate` refuses
ineligible users unless `override=true` is passed.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from formadb.database import get_db, get_read_db
from formadb.errors import AlreadyExists, InvalidArgument, TrainingError, to_http_exception
from formadb.security import require_admin
from ..accounts import models as account_models
from . import attendance, certification, schemas

router = APIRouter(prefix="/admin", tags=["admin-training"])


@router.get(
    "/history/{user_id}",
    response_model=List[schemas.AttendanceHistoryItem],
    summary="Attendance history of a user",
)
def attendance_history(
    user_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(require_admin),
):
    return attendance.participant_history(db, user_id)


@router.get(
    "/certification/eligible/{user_id}/{formation_id}",
    response_model=schemas.EligibilityResult,
    summary="Check certificate eligibility (all sessions attended)",
)
def check_eligibility(
    user_id: str,
    formation_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(require_admin),
):
    return certification.check_eligibility(db, user_id, formation_id)


@router.get(
    "/certification/status/{user_id}/{formation_id}",
    response_model=schemas.CertificationStatus,
)
def certification_status(
    user_id: str,
    formation_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(require_admin),
):
    return certification.certification_status(db, user_id, formation_id)


@router.post(
    "/certification/generate",
    response_model=schemas.CertificateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a completion certificate",
)
def generate_certificate(
    payload: schemas.CertificateIssue,
    override: bool = False,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_admin),
):
    if not override:
        eligibility = certification.check_eligibility(db, payload.user_id, payload.formation_id)
        if not eligibility.eligible:
            raise to_http_exception(
                InvalidArgument(eligibility.reason or "User is not eligible."),
                data=eligibility.model_dump(),
            )

    try:
        return certification.issue_certificate(
            db,
            payload.user_id,
            payload.formation_id,
            issued_by_user_id=current_user.id,
        )
    except AlreadyExists as exc:
        existing = schemas.CertificateRead.model_validate(exc.payload)
        raise to_http_exception(exc, data=existing.model_dump(mode="json"))
    except TrainingError as exc:
        raise to_http_exception(exc)


@router.get(
    "/certificates",
    response_model=List[schemas.CertificateRead],
)
def list_certificates(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(require_admin),
):
    return certification.list_certificates(db)
