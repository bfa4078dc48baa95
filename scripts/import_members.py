"""
Import members from a spreadsheet without going through the admin panel.

Runs the same pipeline as POST /api/admin/bulk-users/upload: rows are mapped,
invalid rows reported, valid rows provisioned one by one and emailed.

Usage:
    python scripts/import_members.py members.xlsx --operator-id <uuid>
    python scripts/import_members.py members.csv --operator-id <uuid> --validate-only
    python scripts/import_members.py members.xlsx --operator-id <uuid> --output credentials.csv
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path (works on both Windows and Unix)
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.db import AsyncSessionFactory
from app.core.exceptions import SpreadsheetError
from app.services.bulk_import import BulkImportService
from app.services.credential_export import export_credentials_csv
from app.services.email import EmailService
from app.services.identity import IdentityAdminClient
from app.services.import_service import ImportService
from app.services.provisioning_service import AccountProvisioner

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Bulk import members from .xlsx or .csv")
    parser.add_argument("file", type=Path, help="Spreadsheet to import")
    parser.add_argument("--operator-id", required=True, help="Identity id recorded as the inviter")
    parser.add_argument("--validate-only", action="store_true", help="Report row errors and exit")
    parser.add_argument("--output", type=Path, help="Write the created credentials to this CSV file")
    return parser.parse_args()


async def run_import(args) -> int:
    importer = ImportService()
    file_bytes = args.file.read_bytes()

    try:
        if args.validate_only:
            preview = importer.validate_import(file_bytes, args.file.name)
            print(f"Rows: {preview.total_rows}  valid: {preview.valid_rows}  invalid: {preview.invalid_rows}")
            for error in preview.errors:
                print(f"  row {error.row} {error.field or ''}: {error.error}")
            for warning in preview.warnings:
                print(f"  warning: {warning}")
            return 0 if preview.invalid_rows == 0 else 1
        mapped, warnings = importer.map_file(file_bytes, args.file.name)
    except SpreadsheetError as e:
        logger.error(str(e))
        return 2

    for warning in warnings:
        logger.warning(warning)
    for item in mapped:
        for error in item.errors:
            logger.warning(f"Row {error.row} rejected: {error.field}: {error.error}")

    requests = [item.request for item in mapped if item.is_valid]
    async with AsyncSessionFactory() as db:
        service = BulkImportService(AccountProvisioner(db, IdentityAdminClient()), EmailService())
        response = await service.run(requests, args.operator_id)

    for outcome in response.results:
        status = "created" if outcome.success else f"FAILED: {outcome.error}"
        print(f"{outcome.email}: {status}")

    summary = response.summary
    print(f"Total {summary.total}, created {summary.success}, failed {summary.failed}, emails sent {summary.emails_sent}")

    if args.output:
        args.output.write_text(export_credentials_csv(response.results), encoding="utf-8")
        print(f"Credentials written to {args.output}")

    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    args = parse_args()

    # Windows requires SelectorEventLoop for psycopg async compatibility
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

    sys.exit(asyncio.run(run_import(args)))
