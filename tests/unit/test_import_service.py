"""
Unit Tests for the spreadsheet row mapper and file parsing

Covers:
1. Header normalization and field mapping
2. Required fields and field-level errors
3. Role pass-through
4. CSV / Excel parsing
5. Validation preview and template
"""
import io
from datetime import date

import pytest
from openpyxl import Workbook

from app.core.exceptions import SpreadsheetError
from app.services.credentials import PASSWORD_ALPHABET
from app.services.import_service import TEMPLATE_HEADERS, ImportService


@pytest.fixture
def importer() -> ImportService:
    return ImportService(max_rows=50)


def xlsx_bytes(rows) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestMapRow:

    def test_maps_spreadsheet_headers_to_profile_fields(self, importer):
        row = {
            "email": "siti.aminah@gmail.com",
            "fullName": "Siti Aminah",
            "telephoneNumbers Malaysia": "+60 12-345 6789",
            "addresses Korea": "45 Daehak-ro, Seoul",
            "studyPeriod StartDate": "2022-03-01",
            "nextOfKinContactNumber": "+60 19-876 5432",
            "ppmk_batch": "2022",
        }
        mapped = importer.map_row(row, 2)

        assert mapped.is_valid
        request = mapped.request
        assert request.email == "siti.aminah@gmail.com"
        assert request.full_name == "Siti Aminah"
        profile = request.profile_data
        assert profile.full_name == "Siti Aminah"
        assert profile.telephone_malaysia == "+60 12-345 6789"
        assert profile.address_korea == "45 Daehak-ro, Seoul"
        assert profile.study_start_date == "2022-03-01"
        assert profile.next_of_kin_contact_number == "+60 19-876 5432"
        assert profile.ppmk_batch == "2022"

    def test_generates_password(self, importer):
        mapped = importer.map_row({"email": "a.rahman@gmail.com", "fullName": "A Rahman"}, 2)
        assert len(mapped.request.password) == 12
        assert set(mapped.request.password) <= set(PASSWORD_ALPHABET)

    def test_blank_cells_stay_absent(self, importer):
        row = {"email": "a.rahman@gmail.com", "fullName": "A Rahman", "gender": "  ", "race": None}
        profile = importer.map_row(row, 2).request.profile_data
        assert profile.gender is None
        assert profile.race is None

    def test_blank_role_defaults_to_member(self, importer):
        mapped = importer.map_row({"email": "a.rahman@gmail.com", "fullName": "A Rahman", "role": ""}, 2)
        assert mapped.request.role == "member"

    def test_role_is_lowercased(self, importer):
        mapped = importer.map_row({"email": "a.rahman@gmail.com", "fullName": "A Rahman", "role": "Admin"}, 2)
        assert mapped.request.role == "admin"

    def test_unknown_role_passes_through(self, importer):
        mapped = importer.map_row({"email": "a.rahman@gmail.com", "fullName": "A Rahman", "role": "Owner"}, 2)
        assert mapped.is_valid
        assert mapped.request.role == "owner"

    def test_missing_email_is_field_error(self, importer):
        mapped = importer.map_row({"email": "", "fullName": "A Rahman"}, 5)
        assert not mapped.is_valid
        assert mapped.request is None
        assert [(e.row, e.field) for e in mapped.errors] == [(5, "email")]

    def test_malformed_email_is_field_error(self, importer):
        mapped = importer.map_row({"email": "not-an-email", "fullName": "A Rahman"}, 3)
        assert not mapped.is_valid
        assert mapped.errors[0].field == "email"
        assert mapped.errors[0].value == "not-an-email"

    def test_missing_full_name_is_field_error(self, importer):
        mapped = importer.map_row({"email": "a.rahman@gmail.com"}, 4)
        assert [e.field for e in mapped.errors] == ["fullName"]

    def test_all_errors_reported_in_one_pass(self, importer):
        mapped = importer.map_row({"email": "bad", "fullName": ""}, 2)
        assert {e.field for e in mapped.errors} == {"email", "fullName"}

    def test_unknown_column_warns(self, importer):
        mapped = importer.map_row({"email": "a.rahman@gmail.com", "fullName": "A Rahman", "shoeSize": "42"}, 2)
        assert mapped.is_valid
        assert mapped.warnings == ["Unknown column 'shoeSize' ignored"]


class TestParseFile:

    def test_csv_with_bom(self, importer):
        content = "\ufeffemail,fullName\nsiti.aminah@gmail.com,Siti Aminah\n".encode("utf-8")
        rows = importer.parse_file(content, "members.csv")
        assert rows == [{"email": "siti.aminah@gmail.com", "fullName": "Siti Aminah"}]

    def test_csv_skips_empty_rows(self, importer):
        content = b"email,fullName\n,\nsiti.aminah@gmail.com,Siti Aminah\n,\n"
        rows = importer.parse_file(content, "members.csv")
        assert len(rows) == 1

    def test_xlsx_dates_and_numbers(self, importer):
        content = xlsx_bytes([
            ["email", "fullName", "dateOfBirth", "studyYear"],
            ["siti.aminah@gmail.com", "Siti Aminah", date(2001, 4, 17), 3],
            [None, None, None, None],
        ])
        rows = importer.parse_file(content, "members.xlsx")
        assert rows == [{
            "email": "siti.aminah@gmail.com",
            "fullName": "Siti Aminah",
            "dateOfBirth": "2001-04-17",
            "studyYear": "3",
        }]

    def test_unsupported_extension(self, importer):
        with pytest.raises(SpreadsheetError):
            importer.parse_file(b"whatever", "members.pdf")

    def test_corrupt_xlsx(self, importer):
        with pytest.raises(SpreadsheetError):
            importer.parse_file(b"not a zip file", "members.xlsx")

    def test_row_limit(self):
        importer = ImportService(max_rows=2)
        content = b"email,fullName\na@gmail.com,A\nb@gmail.com,B\nc@gmail.com,C\n"
        with pytest.raises(SpreadsheetError):
            importer.parse_file(content, "members.csv")

    def test_map_file_numbers_rows_from_two(self, importer):
        content = b"email,fullName,favouriteFood\na@gmail.com,A,Nasi\n,B,Roti\n"
        mapped, warnings = importer.map_file(content, "members.csv")
        assert [m.row for m in mapped] == [2, 3]
        assert mapped[0].is_valid
        assert mapped[1].errors[0].row == 3
        assert warnings == ["Unknown column 'favouriteFood' ignored"]


class TestValidationAndTemplate:

    def test_validate_import_preview(self, importer):
        content = b"email,fullName\na@gmail.com,A\nbad,B\nc@gmail.com,C\n"
        preview = importer.validate_import(content, "members.csv")
        assert preview.total_rows == 3
        assert preview.valid_rows == 2
        assert preview.invalid_rows == 1
        assert preview.errors[0].row == 3
        assert len(preview.sample_data) == 2
        assert all("password" not in sample for sample in preview.sample_data)
        assert preview.sample_data[0]["fullName"] == "A"

    def test_validate_empty_file(self, importer):
        preview = importer.validate_import(b"email,fullName\n", "members.csv")
        assert preview.total_rows == 0
        assert preview.warnings == ["File is empty"]

    def test_template_maps_cleanly(self, importer):
        template = importer.generate_template()
        mapped, warnings = importer.map_file(template, "template.csv")

        assert template.decode("utf-8").splitlines()[0].split(",")[:2] == ["email", "fullName"]
        assert len(mapped) == 1
        assert mapped[0].is_valid
        assert warnings == []

    def test_every_template_header_is_mapped(self):
        for header in TEMPLATE_HEADERS:
            assert ImportService.normalize_header(header) in ImportService.FIELD_MAPPINGS
