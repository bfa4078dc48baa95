"""Pydantic schemas."""

from app.schemas.imports import ImportError, MappedRow, UploadImportResponse, ValidationPreview  # noqa: F401
from app.schemas.provisioning import (  # noqa: F401
    AccountRequest,
    BatchSummary,
    BulkCreateUsersRequest,
    BulkCreateUsersResponse,
    ProfileData,
    RowOutcome,
)
