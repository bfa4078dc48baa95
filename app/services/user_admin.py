"""Admin-panel operations on member profiles and roles."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.core.rbac import AppRole
from app.models.profile import Profile
from app.models.rbac import UserRole
from app.schemas.user import AdminUserResponse
from app.services.provisioning_service import apply_role

logger = logging.getLogger(__name__)


def to_admin_user(profile: Profile, role: Optional[str]) -> AdminUserResponse:
    data = AdminUserResponse.model_validate(profile)
    data.role = AppRole(role) if role else None
    return data


class UserAdminService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_users(
        self, search: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[AdminUserResponse]:
        """Profiles with their role, newest first, optionally filtered by name, username or email."""
        query = select(Profile, UserRole.role).outerjoin(UserRole, UserRole.user_id == Profile.user_id)

        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Profile.full_name.ilike(term),
                    Profile.display_name.ilike(term),
                    Profile.username.ilike(term),
                    Profile.email.ilike(term),
                )
            )

        query = query.order_by(Profile.created_at.desc()).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return [to_admin_user(profile, role) for profile, role in result.all()]

    async def _get_profile(self, user_id: str) -> Profile:
        result = await self.db.execute(select(Profile).where(Profile.user_id == user_id))
        profile = result.scalar_one_or_none()
        if profile is None:
            raise NotFoundError("User not found")
        return profile

    async def assign_role(self, user_id: str, role: AppRole, operator_id: str) -> UserRole:
        """Replace the user's role."""
        await self._get_profile(user_id)
        assignment = await apply_role(self.db, user_id, role, operator_id)
        await self.db.commit()
        await self.db.refresh(assignment)
        logger.info(f"Role of {user_id} set to {role.value} by {operator_id}")
        return assignment

    async def update_profile(self, user_id: str, updates: Dict[str, Any]) -> AdminUserResponse:
        """Write only the given profile fields."""
        profile = await self._get_profile(user_id)
        for key, value in updates.items():
            setattr(profile, key, value)
        await self.db.commit()
        await self.db.refresh(profile)

        assignment = await self.db.get(UserRole, user_id)
        return to_admin_user(profile, assignment.role if assignment else None)
