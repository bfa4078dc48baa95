from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.db import get_db
from app.core.exceptions import NotFoundError
from app.core.rbac import AppRole
from app.schemas.repair import RepairResponse
from app.services.repair_service import RepairService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> RepairService:
    return RepairService(db)


@router.get("", response_model=List[RepairResponse])
async def list_repairs(
    status_filter: str = Query("pending", alias="status", pattern="^(pending|resolved)$"),
    _: deps.OperatorContext = Depends(deps.require_role(AppRole.ADMIN)),
    service: RepairService = Depends(_service),
) -> List[RepairResponse]:
    repairs = await service.list_repairs(status=status_filter)
    return [RepairResponse.model_validate(r) for r in repairs]


@router.post("/{repair_id}/retry", response_model=RepairResponse)
async def retry_repair(
    repair_id: str,
    _: deps.OperatorContext = Depends(deps.require_role(AppRole.ADMIN)),
    service: RepairService = Depends(_service),
) -> RepairResponse:
    """Re-apply a profile or role write that failed during provisioning."""
    try:
        repair = await service.retry(repair_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return RepairResponse.model_validate(repair)
