"""
Invited credential schemas for API responses.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class InvitedCredentialResponse(BaseModel):
    """An invited credential. The password hash is never returned."""
    id: str
    email: str
    role: str
    invited_by: Optional[str] = None
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    used: bool
    used_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class InvitedCredentialListResponse(BaseModel):
    """Paginated list of invited credentials."""
    items: List[InvitedCredentialResponse]
    total: int
    page: int
    page_size: int


class ReissueCredentialsResponse(BaseModel):
    """Response after rotating an invited credential and emailing it."""
    success: bool
    message: str
    email: str
    password: str
    email_sent: bool
    new_expires_at: Optional[datetime] = None


class ReissueOutcome(BaseModel):
    """Result of reissuing one invitation in a bulk reissue."""
    invitation_id: str
    email: str
    success: bool
    email_sent: bool = False
    password: Optional[str] = None
    error: Optional[str] = None


class BulkReissueResponse(BaseModel):
    """Per-invitation results of reissuing the most recent invitations."""
    results: List[ReissueOutcome]
    total: int
    succeeded: int
    emails_sent: int
