"""
Role assignment model.

A user holds exactly one role: user_id is the primary key, so a second
assignment for the same user replaces the first instead of adding a row.
"""

from sqlalchemy import Column, DateTime, String, func

from app.models.base import Base


class UserRole(Base):
    """
    Role held by an identity, with audit trail of who assigned it.
    """
    __tablename__ = "user_roles"

    user_id = Column(String, primary_key=True)
    role = Column(String, nullable=False, default="member")

    assigned_by = Column(String, nullable=True)
    assigned_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
