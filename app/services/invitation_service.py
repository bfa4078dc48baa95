"""
Invitation Service for invited credentials.

Handles:
- Listing invited credentials for superadmins
- Reissuing a credential: new password in the identity service, new hash
  and expiry here, and a fresh credentials email
- Reissuing the most recent unused invitations in one call
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.exceptions import IdentityServiceError, NotFoundError
from app.core.security import get_password_hash
from app.models.invited_credential import InvitedCredential
from app.models.profile import Profile
from app.schemas.invitation import (
    BulkReissueResponse,
    InvitedCredentialListResponse,
    InvitedCredentialResponse,
    ReissueCredentialsResponse,
    ReissueOutcome,
)
from app.services.credentials import generate_password

logger = logging.getLogger(__name__)


class InvitationService:
    """Service for managing invited credentials."""

    def __init__(
        self,
        db: AsyncSession,
        identity_client=None,
        email_service=None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.identity = identity_client
        self.email_service = email_service
        self.settings = settings or get_settings()

    async def list_invitations(
        self,
        used: Optional[bool] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> InvitedCredentialListResponse:
        """List invited credentials, newest first."""
        query = select(InvitedCredential)
        count_query = select(func.count(InvitedCredential.id))

        if used is not None:
            query = query.where(InvitedCredential.used.is_(used))
            count_query = count_query.where(InvitedCredential.used.is_(used))

        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        offset = (page - 1) * page_size
        query = query.order_by(InvitedCredential.created_at.desc()).offset(offset).limit(page_size)

        result = await self.db.execute(query)
        items = [InvitedCredentialResponse.model_validate(inv) for inv in result.scalars().all()]

        return InvitedCredentialListResponse(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
        )

    async def reissue_credentials(self, invitation_id: str) -> ReissueCredentialsResponse:
        """
        Rotate the password behind an invitation and email it again.

        Only the hash is stored, so the old password cannot be resent.

        Raises:
            NotFoundError: If the invitation or its account does not exist
            IdentityServiceError: If the identity service rejects the update
        """
        invitation = await self.db.get(InvitedCredential, invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation not found")

        result = await self.db.execute(
            select(Profile).where(func.lower(Profile.email) == invitation.email.lower())
        )
        profile = result.scalars().first()
        if profile is None:
            raise NotFoundError(f"No account exists for {invitation.email}")

        password = generate_password()
        await self.identity.update_user_password(profile.user_id, password)

        invitation.password_hash = get_password_hash(password)
        invitation.expires_at = datetime.now(timezone.utc) + timedelta(days=self.settings.invitation_expiry_days)
        invitation.used = False
        invitation.used_at = None
        await self.db.commit()
        await self.db.refresh(invitation)

        email_sent = await self.email_service.send_credentials(
            invitation.email, password, profile.full_name or profile.display_name
        )
        logger.info(f"Credentials reissued for {invitation.email}, email sent: {email_sent}")

        return ReissueCredentialsResponse(
            success=True,
            message="Credentials reissued" + ("" if email_sent else "; email could not be sent"),
            email=invitation.email,
            password=password,
            email_sent=email_sent,
            new_expires_at=invitation.expires_at,
        )

    async def reissue_recent(self, limit: int = 10) -> BulkReissueResponse:
        """
        Reissue the newest unused invitations, one at a time.

        A failure on one invitation is recorded in its outcome and the rest
        are still reissued.
        """
        result = await self.db.execute(
            select(InvitedCredential.id, InvitedCredential.email)
            .where(InvitedCredential.used.is_(False))
            .order_by(InvitedCredential.created_at.desc())
            .limit(limit)
        )
        targets = result.all()

        outcomes = []
        for invitation_id, email in targets:
            try:
                reissued = await self.reissue_credentials(invitation_id)
            except (NotFoundError, IdentityServiceError) as e:
                logger.warning(f"Could not reissue invitation {invitation_id} ({email}): {e}")
                outcomes.append(ReissueOutcome(invitation_id=invitation_id, email=email, success=False, error=str(e)))
                continue
            outcomes.append(ReissueOutcome(
                invitation_id=invitation_id,
                email=reissued.email,
                success=True,
                email_sent=reissued.email_sent,
                password=reissued.password,
            ))

        succeeded = sum(1 for o in outcomes if o.success)
        logger.info(f"Bulk reissue finished: {succeeded}/{len(outcomes)} reissued")
        return BulkReissueResponse(
            results=outcomes,
            total=len(outcomes),
            succeeded=succeeded,
            emails_sent=sum(1 for o in outcomes if o.email_sent),
        )
