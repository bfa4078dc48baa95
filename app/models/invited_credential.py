"""
Invited Credential Model for bulk-provisioned accounts.

One row per invited email:
- Hashed one-time password handed out by an administrator
- Role the account will receive
- Audit trail (invited_by, created_at)
- Expiry and first-use tracking (used, used_at)
"""

from sqlalchemy import Boolean, Column, DateTime, Index, String, func

from app.models.base import Base


class InvitedCredential(Base):
    """
    Credential issued to an email before its account exists.

    Flow:
    1. Admin imports a spreadsheet; a row per email is created here
    2. The identity account is created with the same password
    3. The member signs in and is forced to change the password
    4. The sign-in flow marks the row as used
    """
    __tablename__ = "invited_credentials"

    id = Column(String, primary_key=True)

    email = Column(String, nullable=False, index=True)
    password_hash = Column(String, nullable=False)

    # member, admin or superadmin
    role = Column(String, nullable=False, default="member")

    # Identity id of the administrator who ran the import
    invited_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=True)

    used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_invited_credentials_email_used", "email", "used"),
    )
