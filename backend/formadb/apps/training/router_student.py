# backend/formadb/apps/training/router_student.py

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from formadb.database import get_read_db
from formadb.security import get_current_active_user
from ..accounts import models as account_models
from . import certification, dashboard, schemas
from .pdf_renderer import certificate_filename, render_certificate_pdf

router = APIRouter(prefix="/student", tags=["student"])


@router.get(
    "/dashboard",
    response_model=schemas.StudentDashboard,
    summary="Progress, upcoming and missed sessions of the current user",
)
def student_dashboard(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return dashboard.student_dashboard(db, current_user.id)


@router.get(
    "/certificates",
    response_model=List[schemas.CertificateRead],
)
def my_certificates(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return certification.list_certificates(db, user_id=current_user.id)


@router.get(
    "/certificate/download/{formation_id}",
    response_class=Response,
    summary="Download the current user's certificate for a formation as PDF",
)
def download_certificate(
    formation_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    certificate = certification.get_certificate_for(db, current_user.id, formation_id)
    if certificate is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No certificate found for this formation.",
        )

    pdf_bytes = render_certificate_pdf(
        certificate,
        holder_name=current_user.name,
        formation_title=certificate.formation.title,
    )
    filename = certificate_filename(certificate.certificate_code)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
