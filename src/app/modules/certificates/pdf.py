"""
Certificate PDF Rendering

Draws a single landscape A4 internship certificate with reportlab.
Layout coordinates are expressed in millimetres from the top-left corner
and converted to reportlab's bottom-left origin by ``_y``.
"""

import io
import logging
from datetime import date
from xml.sax.saxutils import escape

from reportlab.lib.colors import Color
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph

from app.core.config import settings
from app.core.qr import qr_png_bytes
from app.modules.applications.schemas import ApplicationRecord
from app.modules.certificates.grading import (
    calculate_duration_days,
    format_date_dmy,
    gender_tokens,
)
from app.modules.certificates.schemas import CertificateRecord

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = landscape(A4)

CREAM = Color(253 / 255, 252 / 255, 245 / 255)
GREEN = Color(20 / 255, 100 / 255, 40 / 255)
DEEP_RED = Color(150 / 255, 20 / 255, 20 / 255)
DARK_GREY = Color(40 / 255, 40 / 255, 40 / 255)
MID_GREY = Color(80 / 255, 80 / 255, 80 / 255)
LIGHT_GREY = Color(100 / 255, 100 / 255, 100 / 255)

BODY_STYLE = ParagraphStyle(
    "certificate-body",
    fontName="Helvetica",
    fontSize=12,
    leading=17,
    textColor=DARK_GREY,
    alignment=4,  # justified
)


def _y(top_mm: float) -> float:
    return PAGE_HEIGHT - top_mm * mm


def _text(c: canvas.Canvas, x_mm: float, top_mm: float, text: str, align: str = "left") -> None:
    x, y = x_mm * mm, _y(top_mm)
    if align == "right":
        c.drawRightString(x, y, text)
    elif align == "center":
        c.drawCentredString(x, y, text)
    else:
        c.drawString(x, y, text)


def _image(c: canvas.Canvas, content: bytes, x_mm: float, top_mm: float, w_mm: float, h_mm: float):
    reader = ImageReader(io.BytesIO(content))
    c.drawImage(reader, x_mm * mm, _y(top_mm + h_mm), width=w_mm * mm, height=h_mm * mm)


def build_body_markup(application: ApplicationRecord, certificate: CertificateRecord) -> str:
    """Certificate body as reportlab paragraph markup (user data escaped)."""
    tokens = gender_tokens(application.gender)
    first_name = application.student_name.split(" ")[0]
    days = calculate_duration_days(certificate.start_date, certificate.end_date)
    issuer = escape(settings.certificate_issuer_name)
    university = escape(settings.certificate_university_name)

    reg_part = ""
    if certificate.rts_reg_number:
        reg_part = f"Reg. No. <b>{escape(certificate.rts_reg_number)}</b> "

    return (
        f"This is to certify that {tokens.salutation} <b>{escape(application.student_name)}</b> "
        f"{reg_part}{tokens.relation} {escape(application.father_name)}, student of "
        f"<b>{escape(application.current_semester)}</b> at <b>{university}</b> "
        f"has interned at our institution for a period of <b>{days} days</b>. "
        f"Trained with <b>{escape(application.internship_topic)}</b> for one of our "
        f"institutions at <b>{issuer}</b> and has achieved the grade "
        f"<b>'{escape(certificate.grade)}'</b> in the examination. "
        f"During the period of internship <b>{escape(first_name)}</b> was found to be "
        f"efficient, hard working and diligent. We wish {tokens.pronoun} the very best in "
        f"all {tokens.possessive} future endeavours."
    )


def render_certificate_pdf(
    application: ApplicationRecord,
    certificate: CertificateRecord,
    view_url: str,
    photo: bytes | None = None,
    issued_on: date | None = None,
) -> bytes:
    """
    Render the certificate.

    Args:
        application: the certified student's application
        certificate: the stored certificate (serial, marks, grade, period)
        view_url: public verification URL encoded in the QR code
        photo: raw image bytes for the student photo, if available
        issued_on: date printed as the date of issue (defaults to today)

    Returns:
        PDF document bytes
    """
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=landscape(A4))
    c.setTitle(f"Certificate {certificate.serial_number}")

    # Background
    c.setFillColor(CREAM)
    c.rect(0, 0, PAGE_WIDTH, PAGE_HEIGHT, stroke=0, fill=1)

    # Double border with corner marks
    c.setStrokeColor(GREEN)
    c.setLineWidth(5 * mm / 2.83)
    c.rect(8 * mm, 8 * mm, 281 * mm, 194 * mm, stroke=1, fill=0)
    c.setLineWidth(1)
    c.rect(15 * mm, 15 * mm, 267 * mm, 180 * mm, stroke=1, fill=0)
    c.setFillColor(GREEN)
    for x_mm, top_mm in ((14, 14), (280, 14), (14, 193), (280, 193)):
        c.rect(x_mm * mm, _y(top_mm + 3), 3 * mm, 3 * mm, stroke=0, fill=1)

    # Header: university left, issuer right
    c.setFillColor(GREEN)
    c.setFont("Helvetica-Bold", 10)
    _text(c, 18, 26, settings.certificate_university_name)
    c.setFont("Helvetica-Bold", 9)
    _text(c, 278, 26, settings.certificate_issuer_name, align="right")

    c.setStrokeColor(GREEN)
    c.setLineWidth(0.4 * mm)
    c.line(18 * mm, _y(50), 279 * mm, _y(50))

    # Title
    c.setFillColor(DEEP_RED)
    c.setFont("Times-Italic", 32)
    _text(c, 148.5, 64, "Certificate", align="center")
    c.setLineWidth(0.7 * mm)
    c.line(116 * mm, _y(67), 181 * mm, _y(67))

    # Body
    body = Paragraph(build_body_markup(application, certificate), BODY_STYLE)
    body_width = 200 * mm
    _, body_height = body.wrapOn(c, body_width, 50 * mm)
    body.drawOn(c, (PAGE_WIDTH - body_width) / 2, _y(72) - body_height)

    # Student identification grid
    grid_top = 125
    c.setFillColor(DARK_GREY)
    c.setFont("Helvetica", 9.5)
    _text(c, 18, grid_top, "Roll No.:")
    _text(c, 120, grid_top, "Class Roll:")
    _text(c, 18, grid_top + 8, "Reg. No. (University):")
    _text(c, 18, grid_top + 16, "Marks Obtained:")
    _text(c, 18, grid_top + 24, "Internship Period:")

    c.setFont("Helvetica-Bold", 9.5)
    _text(c, 60, grid_top, application.university_roll_number)
    _text(c, 145, grid_top, application.class_roll_no)
    _text(c, 60, grid_top + 8, application.university_registration_number)
    _text(c, 60, grid_top + 16, f"{certificate.marks}/100")
    _text(
        c,
        60,
        grid_top + 24,
        f"{format_date_dmy(certificate.start_date)} to {format_date_dmy(certificate.end_date)}",
    )

    # Photo (top right)
    if photo:
        try:
            _image(c, photo, 256, 48, 20, 25)
            c.setStrokeColor(GREEN)
            c.setLineWidth(0.5 * mm)
            c.rect(256 * mm, _y(73), 20 * mm, 25 * mm, stroke=1, fill=0)
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping unreadable photo for application {application.id}: {e}")

    # Verification QR and serial
    _image(c, qr_png_bytes(view_url), 255, 78, 22, 22)
    c.setFillColor(LIGHT_GREY)
    c.setFont("Helvetica", 7)
    _text(c, 266, 104, "Scan to verify", align="center")
    c.setFont("Helvetica", 8)
    _text(c, 278, 114, f"Sl. No. {certificate.serial_number}", align="right")

    # Footer: date of issue and signature lines
    bottom = 180
    c.setFillColor(DARK_GREY)
    c.setFont("Helvetica", 10)
    _text(c, 18, bottom + 5, f"Date of Issue: {format_date_dmy(issued_on or date.today())}")

    c.setStrokeColor(MID_GREY)
    c.setLineWidth(0.3 * mm)
    c.setFont("Helvetica", 9)
    c.line(110 * mm, _y(bottom), 180 * mm, _y(bottom))
    _text(c, 145, bottom + 5, "Auth. Signatory", align="center")
    c.line(205 * mm, _y(bottom), 275 * mm, _y(bottom))
    _text(c, 240, bottom + 5, "Director", align="center")

    c.showPage()
    c.save()
    return buffer.getvalue()
