"""
Invitations Router - invited credentials issued by bulk imports.

Provides endpoints for:
- Listing invited credentials (superadmin)
- Reissuing a credential with a new password (superadmin)
- Reissuing the most recent unused invitations (superadmin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.db import get_db
from app.core.exceptions import IdentityServiceError, NotFoundError
from app.core.rbac import AppRole
from app.schemas.invitation import (
    BulkReissueResponse,
    InvitedCredentialListResponse,
    ReissueCredentialsResponse,
)
from app.services.invitation_service import InvitationService

router = APIRouter()


async def _service(
    db: AsyncSession = Depends(get_db),
    identity_client=Depends(deps.get_identity_client),
    email_service=Depends(deps.get_email_service),
) -> InvitationService:
    return InvitationService(db, identity_client, email_service)


@router.get("", response_model=InvitedCredentialListResponse)
async def list_invitations(
    used: Optional[bool] = Query(None, description="Filter by used flag"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    _: deps.OperatorContext = Depends(deps.require_role(AppRole.SUPERADMIN)),
    service: InvitationService = Depends(_service),
) -> InvitedCredentialListResponse:
    """List invited credentials, newest first."""
    return await service.list_invitations(used=used, page=page, page_size=page_size)


@router.post("/reissue-recent", response_model=BulkReissueResponse)
async def reissue_recent_invitations(
    limit: int = Query(10, ge=1, le=50, description="How many of the newest unused invitations to reissue"),
    _: deps.OperatorContext = Depends(deps.require_role(AppRole.SUPERADMIN)),
    service: InvitationService = Depends(_service),
) -> BulkReissueResponse:
    """Reissue and email the newest unused invitations; failures are reported per invitation."""
    return await service.reissue_recent(limit=limit)


@router.post("/{invitation_id}/reissue", response_model=ReissueCredentialsResponse)
async def reissue_invitation(
    invitation_id: str,
    _: deps.OperatorContext = Depends(deps.require_role(AppRole.SUPERADMIN)),
    service: InvitationService = Depends(_service),
) -> ReissueCredentialsResponse:
    """
    Generate a new password for an invited account and email it.

    The new password is also returned so it can be handed over manually
    if the email does not arrive.
    """
    try:
        return await service.reissue_credentials(invitation_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except IdentityServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
