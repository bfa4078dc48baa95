"""CSV and Excel import service for bulk member imports."""

import csv
import io
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from openpyxl import load_workbook

from app.core.config import get_settings
from app.core.exceptions import SpreadsheetError
from app.schemas.imports import ImportError, MappedRow, ValidationPreview
from app.schemas.provisioning import AccountRequest, ProfileData
from app.services.credentials import generate_password

logger = logging.getLogger(__name__)

# Headers exactly as they appear in the downloadable template, in order
TEMPLATE_HEADERS = [
    "email",
    "fullName",
    "role",
    "gender",
    "maritalStatus",
    "race",
    "religion",
    "dateOfBirth",
    "bornPlace",
    "passportNumber",
    "arcNumber",
    "identityCardNumber",
    "telephoneNumbers Malaysia",
    "telephoneNumbers Korea",
    "addresses Malaysia",
    "addresses Korea",
    "studyingPlace",
    "studyCourse",
    "studyLevel",
    "studyPeriod StartDate",
    "studyPeriod EndDate",
    "studyYear",
    "ppmkBatch",
    "sponsorship",
    "sponsorshipAddress",
    "sponsorshipPhoneNumber",
    "bloodType",
    "allergy",
    "medicalCondition",
    "nextOfKin",
    "nextOfKinRelationship",
    "nextOfKinContactNumber",
]

TEMPLATE_SAMPLE = [
    "ahmad.faiz@ppmk.org",
    "Ahmad Faiz bin Ismail",
    "member",
    "Male",
    "Single",
    "Malay",
    "Islam",
    "2001-04-17",
    "Kuala Lumpur",
    "A12345678",
    "AR1234567",
    "010417-14-5678",
    "+60 12-345 6789",
    "+82 10-1234-5678",
    "12 Jalan Ampang, Kuala Lumpur",
    "45 Daehak-ro, Jongno-gu, Seoul",
    "Seoul National University",
    "Mechanical Engineering",
    "Bachelor",
    "2022-03-01",
    "2026-02-28",
    "3",
    "2022",
    "JPA",
    "Jalan Tun Razak, Kuala Lumpur",
    "+60 3-1234 5678",
    "O+",
    "None",
    "None",
    "Ismail bin Hassan",
    "Father",
    "+60 19-876 5432",
]


class ImportService:
    """Parses member spreadsheets and maps rows to account requests."""

    # Normalized header (lower case, no spaces/underscores/hyphens) -> field.
    # Fields other than email, full_name and role land in profile_data.
    FIELD_MAPPINGS = {
        # Account
        "email": "email",
        "emailaddress": "email",
        "fullname": "full_name",
        "name": "full_name",
        "role": "role",
        # Identity
        "gender": "gender",
        "maritalstatus": "marital_status",
        "race": "race",
        "religion": "religion",
        "dateofbirth": "date_of_birth",
        "dob": "date_of_birth",
        "bornplace": "born_place",
        "placeofbirth": "born_place",
        "passportnumber": "passport_number",
        "arcnumber": "arc_number",
        "identitycardnumber": "identity_card_number",
        "icnumber": "identity_card_number",
        # Contact
        "telephonenumbersmalaysia": "telephone_malaysia",
        "telephonemalaysia": "telephone_malaysia",
        "telephonenumberskorea": "telephone_korea",
        "telephonekorea": "telephone_korea",
        "addressesmalaysia": "address_malaysia",
        "addressmalaysia": "address_malaysia",
        "addresseskorea": "address_korea",
        "addresskorea": "address_korea",
        # Academic
        "studyingplace": "studying_place",
        "studycourse": "study_course",
        "studylevel": "study_level",
        "studyperiodstartdate": "study_start_date",
        "studystartdate": "study_start_date",
        "studyperiodenddate": "study_end_date",
        "studyenddate": "study_end_date",
        "studyyear": "study_year",
        "ppmkbatch": "ppmk_batch",
        # Sponsorship
        "sponsorship": "sponsorship",
        "sponsorshipaddress": "sponsorship_address",
        "sponsorshipphonenumber": "sponsorship_phone_number",
        # Medical
        "bloodtype": "blood_type",
        "allergy": "allergy",
        "medicalcondition": "medical_condition",
        # Next of kin
        "nextofkin": "next_of_kin",
        "nextofkinrelationship": "next_of_kin_relationship",
        "nextofkincontactnumber": "next_of_kin_contact_number",
    }

    def __init__(self, max_rows: Optional[int] = None):
        self.max_rows = max_rows if max_rows is not None else get_settings().bulk_import_max_rows

    @staticmethod
    def normalize_header(header: str) -> str:
        """'telephoneNumbers Malaysia' -> 'telephonenumbersmalaysia'."""
        header = header.lstrip("\ufeff").strip().lower()
        for char in (" ", "_", "-"):
            header = header.replace(char, "")
        return header

    @staticmethod
    def _clean_value(value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, (date, datetime)):
            return value.strftime("%Y-%m-%d")
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        text = str(value).strip()
        return text or None

    def map_row(self, row: Dict[str, Any], row_number: int) -> MappedRow:
        """
        Map one spreadsheet row to an AccountRequest in a single pass.

        Blank cells stay absent. A blank role defaults to member; any other
        role is passed through lower-cased and checked by the provisioner.
        Returns field-level errors instead of a request when email or
        full name are missing or the email is malformed.
        """
        values: Dict[str, Optional[str]] = {}
        warnings: List[str] = []
        errors: List[ImportError] = []

        for header, raw in row.items():
            if header is None or not str(header).strip():
                continue
            field = self.FIELD_MAPPINGS.get(self.normalize_header(str(header)))
            if field is None:
                warnings.append(f"Unknown column '{header}' ignored")
                continue
            value = self._clean_value(raw)
            if value is not None:
                values[field] = value

        email = values.get("email")
        if not email:
            errors.append(ImportError(row=row_number, field="email", error="Email is required"))
        else:
            try:
                validate_email(email, check_deliverability=False)
            except EmailNotValidError as e:
                errors.append(
                    ImportError(row=row_number, field="email", error=f"Invalid email: {e}", value=email)
                )

        full_name = values.get("full_name")
        if not full_name:
            errors.append(ImportError(row=row_number, field="fullName", error="Full name is required"))

        if errors:
            return MappedRow(row=row_number, errors=errors, warnings=warnings)

        role = values.get("role")
        profile = ProfileData(**{k: v for k, v in values.items() if k not in ("email", "role")})
        request = AccountRequest(
            email=email,
            password=generate_password(),
            full_name=full_name,
            role=role.lower() if role else "member",
            profile_data=profile,
        )
        return MappedRow(row=row_number, request=request, warnings=warnings)

    def _parse_excel(self, file_bytes: bytes) -> List[Dict[str, Any]]:
        """Parse the first sheet of a workbook; row 1 holds the headers."""
        try:
            workbook = load_workbook(io.BytesIO(file_bytes), read_only=True, data_only=True)
        except Exception as e:
            raise SpreadsheetError(f"Failed to parse Excel: {str(e)}")

        try:
            sheet = workbook.active
            rows_iter = sheet.iter_rows(values_only=True)
            header_row = next(rows_iter, None)
            if header_row is None:
                return []
            headers = [str(h).strip() if h is not None else "" for h in header_row]

            rows = []
            for values in rows_iter:
                cleaned_row = {}
                for i, value in enumerate(values):
                    if i >= len(headers) or not headers[i]:
                        continue
                    cleaned_row[headers[i]] = self._clean_value(value)
                rows.append(cleaned_row)
            return rows
        finally:
            workbook.close()

    def _parse_csv(self, file_bytes: bytes) -> List[Dict[str, Any]]:
        try:
            content = file_bytes.decode("utf-8-sig")
        except UnicodeDecodeError:
            content = file_bytes.decode("latin-1")

        try:
            reader = csv.DictReader(io.StringIO(content))
            rows = []
            for row in reader:
                rows.append({k.strip(): (v.strip() if v else None) for k, v in row.items() if k})
            return rows
        except csv.Error as e:
            raise SpreadsheetError(f"Failed to parse CSV: {str(e)}")

    def parse_file(self, file_bytes: bytes, filename: str) -> List[Dict[str, Any]]:
        """
        Parse an uploaded .xlsx or .csv file into row dictionaries keyed by
        the headers as written in the file. Fully empty rows are skipped.
        """
        filename_lower = (filename or "").lower()
        if filename_lower.endswith((".xlsx", ".xlsm")):
            rows = self._parse_excel(file_bytes)
        elif filename_lower.endswith(".csv"):
            rows = self._parse_csv(file_bytes)
        else:
            raise SpreadsheetError("Unsupported file type. Upload an .xlsx or .csv file")

        rows = [row for row in rows if any(v not in (None, "") for v in row.values())]
        if len(rows) > self.max_rows:
            raise SpreadsheetError(f"File has {len(rows)} rows; at most {self.max_rows} are allowed per import")

        logger.info("Parsed %d rows from %s", len(rows), filename)
        return rows

    def map_file(self, file_bytes: bytes, filename: str) -> Tuple[List[MappedRow], List[str]]:
        """
        Parse and map every row. Returns the mapped rows (row numbers count the
        header as row 1) and the de-duplicated warnings across the file.
        """
        rows = self.parse_file(file_bytes, filename)
        mapped = [self.map_row(row, idx) for idx, row in enumerate(rows, start=2)]

        warnings: List[str] = []
        for item in mapped:
            for warning in item.warnings:
                if warning not in warnings:
                    warnings.append(warning)
        return mapped, warnings

    def validate_import(self, file_bytes: bytes, filename: str) -> ValidationPreview:
        """Validate an import file without provisioning anything."""
        mapped, warnings = self.map_file(file_bytes, filename)
        if not mapped:
            return ValidationPreview(
                total_rows=0, valid_rows=0, invalid_rows=0, errors=[], warnings=["File is empty"]
            )

        errors = [error for item in mapped for error in item.errors]
        valid = [item for item in mapped if item.is_valid]

        # Generated passwords are discarded with the preview
        sample_data = [
            item.request.model_dump(by_alias=True, exclude={"password"}, exclude_none=True)
            for item in valid[:3]
        ]
        return ValidationPreview(
            total_rows=len(mapped),
            valid_rows=len(valid),
            invalid_rows=len(mapped) - len(valid),
            errors=errors,
            warnings=warnings,
            sample_data=sample_data,
        )

    def generate_template(self) -> bytes:
        """Generate a CSV template with the expected headers and one sample row."""
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(TEMPLATE_HEADERS)
        writer.writerow(TEMPLATE_SAMPLE)
        return output.getvalue().encode("utf-8")
