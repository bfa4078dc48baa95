"""Admin user management: listing, role assignment and profile edits."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.db import get_db
from app.core.exceptions import NotFoundError
from app.core.rbac import AppRole
from app.schemas.user import AdminUserResponse, ProfileUpdate, RoleAssignmentResponse, RoleUpdate
from app.services.user_admin import UserAdminService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> UserAdminService:
    return UserAdminService(db)


@router.get("", response_model=List[AdminUserResponse])
async def list_users(
    search: Optional[str] = Query(None, description="Match on name, username or email"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: deps.OperatorContext = Depends(deps.require_role(AppRole.ADMIN)),
    service: UserAdminService = Depends(_service),
) -> List[AdminUserResponse]:
    return await service.list_users(search=search, limit=limit, offset=offset)


@router.put("/{user_id}/role", response_model=RoleAssignmentResponse)
async def update_user_role(
    user_id: str,
    data: RoleUpdate,
    operator: deps.OperatorContext = Depends(deps.require_role(AppRole.ADMIN)),
    service: UserAdminService = Depends(_service),
) -> RoleAssignmentResponse:
    """Replace a user's role. Only superadmins may grant superadmin."""
    if data.role == AppRole.SUPERADMIN and operator.role != AppRole.SUPERADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only a superadmin can grant the superadmin role",
        )
    try:
        assignment = await service.assign_role(user_id, data.role, operator.user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return RoleAssignmentResponse.model_validate(assignment)


@router.patch("/{user_id}/profile", response_model=AdminUserResponse)
async def update_user_profile(
    user_id: str,
    data: ProfileUpdate,
    _: deps.OperatorContext = Depends(deps.require_role(AppRole.ADMIN)),
    service: UserAdminService = Depends(_service),
) -> AdminUserResponse:
    """Update the profile fields present in the request body."""
    try:
        return await service.update_profile(user_id, data.model_dump(exclude_unset=True))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
