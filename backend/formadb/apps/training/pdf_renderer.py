# backend/formadb/apps/training/pdf_renderer.py

from __future__ import annotations

import os
from datetime import datetime
from io import BytesIO

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas

from . import models

CERTIFICATE_ORGANISATION = os.getenv("CERTIFICATE_ORGANISATION", "ASTBA FORMATION")
CERTIFICATE_ORGANISATION_SUBTITLE = os.getenv(
    "CERTIFICATE_ORGANISATION_SUBTITLE",
    "Académie des Sciences et Technologies",
)
CERTIFICATE_ISSUER_CITY = os.getenv("CERTIFICATE_ISSUER_CITY", "Tunis")

FRENCH_MONTHS = (
    "janvier",
    "février",
    "mars",
    "avril",
    "mai",
    "juin",
    "juillet",
    "août",
    "septembre",
    "octobre",
    "novembre",
    "décembre",
)

_RULE_COLOR = HexColor("#334155")
_TITLE_COLOR = HexColor("#1e293b")
_HOLDER_COLOR = HexColor("#2563eb")
_FORMATION_COLOR = HexColor("#0f172a")


def format_french_date(value: datetime) -> str:
    """'3 mars 2026' style date, as printed on certificates."""
    return f"{value.day} {FRENCH_MONTHS[value.month - 1]} {value.year}"


def certificate_filename(certificate_code: str) -> str:
    return f"Certificat-{certificate_code}.pdf"


def render_certificate_pdf(
    certificate: models.Certificate,
    *,
    holder_name: str,
    formation_title: str,
) -> bytes:
    """
    Render a one-page A4 landscape completion certificate and return the PDF bytes.
    """
    buffer = BytesIO()
    page_width, page_height = landscape(A4)
    pdf = canvas.Canvas(buffer, pagesize=(page_width, page_height))
    pdf.setTitle(certificate_filename(certificate.certificate_code))
    centre = page_width / 2

    pdf.setFont("Helvetica-Bold", 24)
    pdf.drawCentredString(centre, page_height - 70, CERTIFICATE_ORGANISATION)
    pdf.setFont("Helvetica", 10)
    pdf.drawCentredString(centre, page_height - 90, CERTIFICATE_ORGANISATION_SUBTITLE)

    pdf.setFillColor(_RULE_COLOR)
    pdf.rect(50, page_height - 150, page_width - 100, 2, stroke=0, fill=1)

    pdf.setFillColor(_TITLE_COLOR)
    pdf.setFont("Helvetica-Bold", 30)
    pdf.drawCentredString(centre, page_height - 200, "CERTIFICAT DE RÉUSSITE")

    pdf.setFillColorRGB(0, 0, 0)
    pdf.setFont("Helvetica", 16)
    pdf.drawCentredString(centre, page_height - 240, "Ce certificat est fièrement décerné à :")

    pdf.setFillColor(_HOLDER_COLOR)
    pdf.setFont("Helvetica-Bold", 28)
    pdf.drawCentredString(centre, page_height - 285, holder_name.upper())

    pdf.setFillColorRGB(0, 0, 0)
    pdf.setFont("Helvetica", 16)
    pdf.drawCentredString(
        centre,
        page_height - 325,
        "Pour avoir validé avec succès tous les niveaux de la formation :",
    )

    pdf.setFillColor(_FORMATION_COLOR)
    pdf.setFont("Helvetica-Bold", 24)
    pdf.drawCentredString(centre, page_height - 365, formation_title)

    pdf.setFillColorRGB(0, 0, 0)
    issued = format_french_date(certificate.issued_at or datetime.utcnow())
    pdf.setFont("Helvetica", 12)
    pdf.drawString(100, 130, f"Fait à {CERTIFICATE_ISSUER_CITY}, le {issued}")
    pdf.setFont("Helvetica-Bold", 12)
    pdf.drawString(550, 130, "Le Responsable de Formation")
    pdf.setFont("Helvetica-Oblique", 10)
    pdf.drawString(550, 90, "(Signature numérique)")

    pdf.setFillColor(_RULE_COLOR)
    pdf.rect(50, 70, page_width - 100, 2, stroke=0, fill=1)
    pdf.setFillColorRGB(0.5, 0.5, 0.5)
    pdf.setFont("Helvetica", 9)
    pdf.drawCentredString(centre, 55, f"ID Certificat: {certificate.certificate_code}")

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
