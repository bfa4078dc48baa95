"""Import schemas for spreadsheet bulk user imports."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.provisioning import AccountRequest, BatchSummary, CamelModel, RowOutcome


class ImportError(BaseModel):
    """Field-level error found while mapping a spreadsheet row."""
    row: int = Field(..., description="Spreadsheet row number (header is row 1)")
    field: Optional[str] = Field(None, description="Field with error")
    error: str = Field(..., description="Error message")
    value: Optional[str] = Field(None, description="Invalid value")


class MappedRow(BaseModel):
    """Outcome of mapping one spreadsheet row: a request or its errors."""
    row: int
    request: Optional[AccountRequest] = None
    errors: List[ImportError] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.request is not None and not self.errors


class ValidationPreview(BaseModel):
    """Preview of what will be imported."""
    total_rows: int
    valid_rows: int
    invalid_rows: int
    errors: List[ImportError]
    warnings: List[str]
    sample_data: List[Dict[str, Any]] = Field(default_factory=list, description="First 3 valid rows, passwords omitted")


class UploadImportResponse(CamelModel):
    """Result of importing an uploaded spreadsheet."""
    results: List[RowOutcome]
    summary: BatchSummary
    rejected: List[ImportError] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
