"""
Provisioning Repair Model.

When an identity has been created but its profile or role write failed, the
identity cannot be rolled back. A repair row records the write that failed so
an administrator can re-apply it later.
"""

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, func

from app.models.base import Base


class ProvisioningRepair(Base):
    __tablename__ = "provisioning_repairs"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True)

    # "profile" or "role"
    stage = Column(String, nullable=False)
    payload = Column(JSON, nullable=False)
    error = Column(Text, nullable=True)

    # pending -> resolved
    status = Column(String, nullable=False, default="pending", index=True)
    attempts = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    resolved_at = Column(DateTime(timezone=True), nullable=True)
