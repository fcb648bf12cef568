"""
Unit tests for the admin CSV and ZIP exports.
"""

import csv
import io
import zipfile
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from app.modules.admin.exports import CSV_HEADERS, build_csv, build_images_zip, export_filename

PNG_BYTES = b"\x89PNG\r\n\x1a\n"


def _rows(content: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(content)))


class TestCsv:
    """Tests for build_csv."""

    def test_header_only_when_empty(self):
        assert _rows(build_csv([])) == [CSV_HEADERS]

    def test_every_cell_quoted(self, application_record):
        content = build_csv([application_record])

        header, row = content.splitlines()
        assert header.startswith('"Student Name","Father Name"')
        assert row.startswith('"Asha Kumari","Ramesh Kumar"')

    def test_row_values(self, application_record):
        row = dict(zip(CSV_HEADERS, _rows(build_csv([application_record]))[1], strict=True))

        assert row["DOB"] == "2004-05-15"
        assert row["Address"] == "12 Boring Road, Patna, Bihar"
        assert row["WhatsApp"] == ""
        assert row["Email"] == "asha.kumari@example.com"
        assert row["Has Photo"] == "Yes"
        assert row["Submitted At"] == "2026-10-01T09:30:00+00:00"

    def test_missing_images_and_quotes(self, application_record):
        application = application_record.model_copy(
            update={"signature": None, "address": 'Flat "B", Kankarbagh'}
        )

        row = dict(zip(CSV_HEADERS, _rows(build_csv([application]))[1], strict=True))

        assert row["Has Signature"] == "No"
        assert row["Address"] == 'Flat "B", Kankarbagh'

    def test_filename(self):
        assert (
            export_filename("internship_applications", "csv", today=date(2026, 10, 17))
            == "internship_applications_2026-10-17.csv"
        )


class TestImagesZip:
    """Tests for build_images_zip."""

    @pytest.mark.asyncio
    async def test_inline_images(self, application_record):
        content = await build_images_zip([application_record])

        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            assert sorted(archive.namelist()) == [
                "photos/Asha_Kumari_PU_2022_0042.png",
                "signatures/Asha_Kumari_PU_2022_0042_signature.png",
            ]
            assert archive.read("photos/Asha_Kumari_PU_2022_0042.png") == PNG_BYTES

    @pytest.mark.asyncio
    async def test_stored_urls_are_downloaded(self, application_record):
        application = application_record.model_copy(
            update={
                "photo": "https://files.example.com/photo/PU_42_1.jpg",
                "signature": "https://files.example.com/signature/PU_42_1.png",
            }
        )
        fetch = AsyncMock(side_effect=[b"jpeg-bytes", None])

        with patch("app.modules.admin.exports.fetch_bytes", fetch):
            content = await build_images_zip([application])

        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            assert archive.namelist() == ["photos/Asha_Kumari_PU_2022_0042.jpg"]
            assert archive.read("photos/Asha_Kumari_PU_2022_0042.jpg") == b"jpeg-bytes"

    @pytest.mark.asyncio
    async def test_unreadable_images_are_skipped(self, application_record):
        application = application_record.model_copy(
            update={"photo": "not-a-data-url", "signature": None}
        )

        content = await build_images_zip([application])

        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            assert archive.namelist() == []
