"""
Unit Tests for the credentials CSV export
"""
import csv
import io
from datetime import date, datetime

from app.schemas.provisioning import RowOutcome
from app.services.credential_export import EXPORT_HEADERS, export_credentials_csv, export_filename


def test_filename_uses_date():
    assert export_filename(date(2025, 10, 20)) == "user-credentials-2025-10-20.csv"


def test_only_successful_rows_are_exported():
    results = [
        RowOutcome(email="a@gmail.com", success=True, password="Pw1!aaaa", full_name="Ali"),
        RowOutcome(email="b@gmail.com", success=False, error="Invalid email"),
        RowOutcome(email="c@gmail.com", success=True, password="Pw2!cccc"),
    ]

    content = export_credentials_csv(results, created_at=datetime(2025, 10, 20, 9, 30))
    rows = list(csv.reader(io.StringIO(content)))

    assert rows[0] == EXPORT_HEADERS
    assert rows[1:] == [
        ["a@gmail.com", "Pw1!aaaa", "Ali", "2025-10-20"],
        ["c@gmail.com", "Pw2!cccc", "", "2025-10-20"],
    ]


def test_empty_results_give_header_only():
    content = export_credentials_csv([])
    assert content.splitlines() == [",".join(EXPORT_HEADERS)]
