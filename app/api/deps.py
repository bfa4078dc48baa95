import logging
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.rbac import ROLE_METADATA, AppRole, has_role_at_least
from app.core.security import decode_access_token
from app.models.rbac import UserRole
from app.services.bulk_import import BulkImportService
from app.services.email import EmailService
from app.services.identity import IdentityAdminClient
from app.services.provisioning_service import AccountProvisioner

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class OperatorContext:
    """The authenticated caller, passed explicitly to services."""
    user_id: str
    email: Optional[str]
    role: Optional[AppRole]


async def get_current_operator(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    db: AsyncSession = Depends(get_db),
) -> OperatorContext:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing credentials")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    role = None
    assignment = await db.get(UserRole, user_id)
    if assignment is not None:
        try:
            role = AppRole(assignment.role)
        except ValueError:
            logger.warning(f"Unknown role '{assignment.role}' stored for {user_id}")

    return OperatorContext(user_id=user_id, email=payload.get("email"), role=role)


def require_role(required: AppRole):
    """
    FastAPI dependency that requires at least the given role.

    Usage:
        @router.get("/admin/users")
        async def list_users(operator = Depends(require_role(AppRole.ADMIN))):
            ...
    """
    async def dependency(
        operator: OperatorContext = Depends(get_current_operator),
    ) -> OperatorContext:
        if not has_role_at_least(operator.role, required):
            logger.warning(
                f"Role check failed: user={operator.user_id}, "
                f"role={operator.role.value if operator.role else None}, required={required.value}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{ROLE_METADATA[required]['display_name']} role required",
            )
        return operator

    return dependency


def get_identity_client() -> IdentityAdminClient:
    return IdentityAdminClient()


def get_email_service() -> EmailService:
    return EmailService()


def get_provisioner(
    db: AsyncSession = Depends(get_db),
    identity_client=Depends(get_identity_client),
) -> AccountProvisioner:
    return AccountProvisioner(db, identity_client)


def get_bulk_import_service(
    provisioner: AccountProvisioner = Depends(get_provisioner),
    email_service=Depends(get_email_service),
) -> BulkImportService:
    return BulkImportService(provisioner, email_service)
