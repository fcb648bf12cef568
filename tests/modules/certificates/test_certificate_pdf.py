"""
Tests for certificate PDF rendering.
"""

import io
from datetime import date

from PIL import Image

from app.modules.certificates.pdf import build_body_markup, render_certificate_pdf

VIEW_URL = "https://apply.example.com/certificate/view/123"


def _png(size=(40, 50)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 180, 160)).save(buffer, format="PNG")
    return buffer.getvalue()


class TestBodyMarkup:
    """Tests for the certificate body text."""

    def test_female_student(self, application_record, certificate_record):
        markup = build_body_markup(application_record, certificate_record)

        assert markup.startswith("This is to certify that Ms. <b>Asha Kumari</b>")
        assert "D/o Ramesh Kumar" in markup
        assert "<b>45 days</b>" in markup
        assert "<b>'A+'</b>" in markup
        assert "<b>Asha</b> was found to be" in markup
        assert "We wish her the very best in all her future endeavours." in markup

    def test_male_student(self, application_record, certificate_record):
        application = application_record.model_copy(update={"gender": "Male"})

        markup = build_body_markup(application, certificate_record)

        assert "Mr. <b>" in markup
        assert "S/o" in markup
        assert "We wish him the very best in all his future endeavours." in markup

    def test_user_text_is_escaped(self, application_record, certificate_record):
        application = application_record.model_copy(
            update={"student_name": "Asha <i>Kumari</i>", "father_name": "R & K"}
        )

        markup = build_body_markup(application, certificate_record)

        assert "Asha &lt;i&gt;Kumari&lt;/i&gt;" in markup
        assert "R &amp; K" in markup


class TestRenderCertificatePdf:
    """Smoke tests for render_certificate_pdf."""

    def test_renders_pdf(self, application_record, certificate_record):
        pdf = render_certificate_pdf(
            application_record, certificate_record, VIEW_URL, issued_on=date(2026, 7, 20)
        )

        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1000

    def test_renders_with_photo(self, application_record, certificate_record):
        pdf = render_certificate_pdf(application_record, certificate_record, VIEW_URL, _png())

        assert pdf.startswith(b"%PDF")

    def test_unreadable_photo_is_skipped(self, application_record, certificate_record):
        pdf = render_certificate_pdf(
            application_record, certificate_record, VIEW_URL, b"not an image"
        )

        assert pdf.startswith(b"%PDF")
