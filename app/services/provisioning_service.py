"""
Account provisioning for one import row.

Writes span two stores: the invitation and profile/role rows live in our
database, the account itself in the identity service. Once the identity
exists it cannot be rolled back, so a failed profile/role write is recorded
as a ProvisioningRepair instead of failing the row.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.exceptions import IdentityServiceError
from app.core.rbac import AppRole, parse_role
from app.core.security import get_password_hash
from app.models.invited_credential import InvitedCredential
from app.models.profile import Profile
from app.models.provisioning_repair import ProvisioningRepair
from app.models.rbac import UserRole
from app.schemas.provisioning import AccountRequest, RowOutcome
from app.services.credentials import generate_password, validate_password

logger = logging.getLogger(__name__)

REPAIR_WARNING = "Account created but its profile or role could not be saved; queued for repair"


@dataclass(frozen=True)
class Registration:
    """An identity that now exists, with the credentials it was created with."""
    email: str
    role: AppRole
    password: str
    user_id: str


def build_profile_payload(request: AccountRequest, email: str) -> Dict[str, Any]:
    """Column values for the profile of a newly provisioned account."""
    payload = request.profile_data.model_dump(exclude_none=True)
    full_name = request.full_name or payload.get("full_name")
    if full_name:
        payload["full_name"] = full_name
    payload.update(
        username=email.split("@")[0],
        display_name=full_name,
        email=email,
        must_change_password=True,
    )
    return payload


async def apply_profile(db: AsyncSession, user_id: str, values: Dict[str, Any]) -> Profile:
    """Insert or update the profile keyed on user_id. Does not commit."""
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        profile = Profile(id=str(uuid.uuid4()), user_id=user_id)
        db.add(profile)
    for key, value in values.items():
        setattr(profile, key, value)
    profile.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return profile


async def apply_role(
    db: AsyncSession, user_id: str, role: AppRole, assigned_by: Optional[str]
) -> UserRole:
    """Replace the user's role row. Does not commit."""
    assignment = await db.get(UserRole, user_id)
    if assignment is None:
        assignment = UserRole(user_id=user_id)
        db.add(assignment)
    assignment.role = role.value
    assignment.assigned_by = assigned_by
    assignment.assigned_at = datetime.now(timezone.utc)
    await db.flush()
    return assignment


class AccountProvisioner:
    """Provision one account: invitation, identity, profile, role."""

    def __init__(self, db: AsyncSession, identity_client, settings: Optional[Settings] = None):
        self.db = db
        self.identity = identity_client
        self.settings = settings or get_settings()

    @staticmethod
    def _failed(request: AccountRequest, error: str) -> RowOutcome:
        return RowOutcome(email=request.email, success=False, full_name=request.full_name, error=error)

    async def find_live_invitation(self, email: str) -> Optional[InvitedCredential]:
        """Return the unused invitation for an email, if any."""
        result = await self.db.execute(
            select(InvitedCredential)
            .where(
                func.lower(InvitedCredential.email) == email.lower(),
                InvitedCredential.used.is_(False),
            )
            .order_by(InvitedCredential.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def ensure_invitation(
        self, email: str, password: str, role: AppRole, operator_id: str
    ) -> InvitedCredential:
        """
        Reuse the live invitation for this email or insert a new one.

        A reused invitation is left untouched. Commits on insert.
        """
        existing = await self.find_live_invitation(email)
        if existing is not None:
            logger.info(f"Reusing invitation {existing.id} for {email}")
            return existing

        invitation = InvitedCredential(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=get_password_hash(password),
            role=role.value,
            invited_by=operator_id,
            created_at=datetime.now(timezone.utc),
            expires_at=datetime.now(timezone.utc) + timedelta(days=self.settings.invitation_expiry_days),
            used=False,
        )
        self.db.add(invitation)
        await self.db.commit()
        return invitation

    async def _enqueue_repairs(
        self, user_id: str, email: str, profile_values: Dict[str, Any], role: AppRole,
        operator_id: str, error: str,
    ) -> List[str]:
        """Record the profile and role writes that were rolled back."""
        warnings = [REPAIR_WARNING]
        try:
            for stage, payload in (
                ("profile", profile_values),
                ("role", {"role": role.value, "assigned_by": operator_id}),
            ):
                self.db.add(ProvisioningRepair(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    email=email,
                    stage=stage,
                    payload=payload,
                    error=error,
                    status="pending",
                    attempts=0,
                ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Could not queue repair for identity {user_id} ({email}): {e}")
            warnings.append("Repair could not be queued; fix the profile and role manually")
        return warnings


    async def _register(
        self, request: AccountRequest, operator_id: str
    ) -> Union[Registration, RowOutcome]:
        """
        Everything up to and including identity creation.

        Returns a failed outcome for row-fatal problems; nothing but the
        invitation is written before the identity exists.
        """
        try:
            email = validate_email(request.email, check_deliverability=False).normalized
        except EmailNotValidError as e:
            return self._failed(request, f"Invalid email: {e}" if request.email else "Email is required")

        try:
            role = parse_role(request.role)
        except ValueError as e:
            return self._failed(request, str(e))

        if request.password:
            try:
                validate_password(request.password)
            except ValueError as e:
                return self._failed(request, f"Invalid password: {e}")
        password = request.password or generate_password()

        try:
            await self.ensure_invitation(email, password, role, operator_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to store invitation for {email}: {e}")
            return self._failed(request, f"Failed to store invitation: {e.__class__.__name__}")

        try:
            user_id = await self.identity.create_user(email, password, request.full_name)
        except IdentityServiceError as e:
            return self._failed(request, str(e))

        return Registration(email=email, role=role, password=password, user_id=user_id)

    async def provision(
        self, request: AccountRequest, operator_id: str, timeout: Optional[float] = None
    ) -> RowOutcome:
        """
        Provision the account described by one request.

        timeout bounds the steps up to identity creation. Once the identity
        exists the row succeeds: a failed profile/role write is queued for
        repair instead of failing the row.
        """
        try:
            registered = await asyncio.wait_for(self._register(request, operator_id), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Provisioning {request.email} timed out after {timeout:g}s")
            await self.db.rollback()
            return self._failed(request, f"Timed out after {timeout:g}s")

        if isinstance(registered, RowOutcome):
            return registered

        email, role, user_id = registered.email, registered.role, registered.user_id
        profile_values = build_profile_payload(request, email)
        warnings: List[str] = []
        try:
            await apply_profile(self.db, user_id, profile_values)
            await apply_role(self.db, user_id, role, operator_id)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Profile/role write failed for identity {user_id} ({email}): {e}")
            warnings = await self._enqueue_repairs(
                user_id, email, profile_values, role, operator_id, str(e) or e.__class__.__name__
            )

        logger.info(f"Provisioned {email} as {role.value} (identity {user_id})")
        return RowOutcome(
            email=request.email,
            success=True,
            user_id=user_id,
            password=registered.password,
            full_name=request.full_name,
            warnings=warnings,
        )
