"""Bulk user import router: JSON batches, spreadsheet uploads, template and export."""

import logging
from typing import Union

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import Response

from app.api import deps
from app.core.config import get_settings
from app.core.exceptions import SpreadsheetError
from app.core.rbac import AppRole
from app.middleware.security import bulk_import_limit, limiter
from app.schemas.imports import UploadImportResponse, ValidationPreview
from app.schemas.provisioning import BulkCreateUsersRequest, BulkCreateUsersResponse, CredentialExportRequest
from app.services.bulk_import import BulkImportService
from app.services.credential_export import export_credentials_csv, export_filename
from app.services.import_service import ImportService

logger = logging.getLogger(__name__)

router = APIRouter()


def _service() -> ImportService:
    return ImportService()


@router.post("", response_model=BulkCreateUsersResponse)
@limiter.limit(bulk_import_limit)
async def bulk_create_users(
    request: Request,
    payload: BulkCreateUsersRequest,
    operator: deps.OperatorContext = Depends(deps.require_role(AppRole.ADMIN)),
    service: BulkImportService = Depends(deps.get_bulk_import_service),
) -> BulkCreateUsersResponse:
    """
    Create accounts for a batch of users.

    Rows are processed in order and each gets its own outcome; a failing row
    does not abort the batch. createdBy, when sent, must be the caller.
    """
    if payload.created_by and payload.created_by != operator.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="createdBy does not match the authenticated user",
        )
    return await service.run(payload.users, operator.user_id)


@router.post("/upload", response_model=Union[ValidationPreview, UploadImportResponse])
@limiter.limit(bulk_import_limit)
async def upload_bulk_users(
    request: Request,
    file: UploadFile = File(...),
    validate_only: bool = Query(False, description="Only validate and preview; create nothing"),
    operator: deps.OperatorContext = Depends(deps.require_role(AppRole.ADMIN)),
    importer: ImportService = Depends(_service),
    service: BulkImportService = Depends(deps.get_bulk_import_service),
) -> Union[ValidationPreview, UploadImportResponse]:
    """
    Import users from an .xlsx or .csv file.

    Rows with a missing or malformed email or a missing full name are
    rejected with field-level errors; the rest are provisioned.
    """
    # Never buffer more than one byte past the limit
    max_bytes = get_settings().bulk_import_max_upload_bytes
    file_bytes = await file.read(max_bytes + 1)
    if len(file_bytes) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {max_bytes} byte upload limit",
        )

    try:
        if validate_only:
            return importer.validate_import(file_bytes, file.filename)
        mapped, warnings = importer.map_file(file_bytes, file.filename)
    except SpreadsheetError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    requests = [item.request for item in mapped if item.is_valid]
    rejected = [error for item in mapped for error in item.errors]
    logger.info(f"Upload {file.filename}: {len(requests)} valid rows, {len(mapped) - len(requests)} rejected")

    result = await service.run(requests, operator.user_id)
    return UploadImportResponse(
        results=result.results,
        summary=result.summary,
        rejected=rejected,
        warnings=warnings,
    )


@router.get("/template")
async def download_template(
    _: deps.OperatorContext = Depends(deps.require_role(AppRole.ADMIN)),
    importer: ImportService = Depends(_service),
) -> Response:
    """Download the CSV template for bulk imports."""
    return Response(
        content=importer.generate_template(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="bulk-users-template.csv"'},
    )


@router.post("/export")
async def export_credentials(
    payload: CredentialExportRequest,
    _: deps.OperatorContext = Depends(deps.require_role(AppRole.ADMIN)),
) -> Response:
    """Download the credentials of the successful rows of an import as CSV."""
    return Response(
        content=export_credentials_csv(payload.results),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )
