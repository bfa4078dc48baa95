from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.core.rbac import AppRole
from app.schemas.provisioning import ProfileData


class OperatorResponse(BaseModel):
    """Resolved session context of the signed-in user."""

    user_id: str
    email: Optional[str] = None
    role: Optional[AppRole] = None


class AdminUserResponse(ProfileData):
    """Profile joined with its role, as listed in the admin panel."""

    user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    must_change_password: bool = False
    role: Optional[AppRole] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProfileUpdate(ProfileData):
    """Admin edit of a profile. Only fields present in the payload are written."""

    username: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None


class RoleUpdate(BaseModel):
    role: AppRole


class RoleAssignmentResponse(BaseModel):
    user_id: str
    role: AppRole
    assigned_by: Optional[str] = None
    assigned_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
