"""CSV export of credentials from a finished bulk import."""

import csv
import io
from datetime import date, datetime
from typing import Iterable, Optional

from app.schemas.provisioning import RowOutcome

EXPORT_HEADERS = ["Email", "Password", "Full Name", "Created Date"]


def export_filename(on: Optional[date] = None) -> str:
    """user-credentials-YYYY-MM-DD.csv"""
    on = on or date.today()
    return f"user-credentials-{on.isoformat()}.csv"


def export_credentials_csv(results: Iterable[RowOutcome], created_at: Optional[datetime] = None) -> str:
    """
    One line per successful outcome. Failed rows are skipped since they
    carry no usable credentials.
    """
    created = (created_at or datetime.now()).strftime("%Y-%m-%d")

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_HEADERS)
    for outcome in results:
        if not outcome.success or not outcome.password:
            continue
        writer.writerow([outcome.email, outcome.password, outcome.full_name or "", created])
    return output.getvalue()
