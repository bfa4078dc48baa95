"""
Repair queue for accounts whose profile or role write failed after the
identity was created.
"""

import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.core.rbac import parse_role
from app.models.provisioning_repair import ProvisioningRepair
from app.services.provisioning_service import apply_profile, apply_role

logger = logging.getLogger(__name__)


class RepairService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_repairs(self, status: str = "pending") -> List[ProvisioningRepair]:
        result = await self.db.execute(
            select(ProvisioningRepair)
            .where(ProvisioningRepair.status == status)
            .order_by(ProvisioningRepair.created_at.asc())
        )
        return list(result.scalars().all())

    async def _apply(self, repair: ProvisioningRepair) -> None:
        payload = dict(repair.payload or {})
        if repair.stage == "profile":
            await apply_profile(self.db, repair.user_id, payload)
        elif repair.stage == "role":
            await apply_role(
                self.db, repair.user_id, parse_role(payload.get("role")), payload.get("assigned_by")
            )
        else:
            raise ValueError(f"Unknown repair stage '{repair.stage}'")

    async def retry(self, repair_id: str) -> ProvisioningRepair:
        """
        Re-apply the write recorded by a repair.

        A resolved repair is returned unchanged. A failed retry, including a
        payload that no longer parses, stays pending with its attempt count
        and error updated.
        """
        repair = await self.db.get(ProvisioningRepair, repair_id)
        if repair is None:
            raise NotFoundError("Repair not found")
        if repair.status == "resolved":
            return repair

        try:
            await self._apply(repair)
            repair.status = "resolved"
            repair.resolved_at = datetime.now(timezone.utc)
            repair.attempts = (repair.attempts or 0) + 1
            repair.error = None
            await self.db.commit()
            logger.info(f"Repair {repair_id} ({repair.stage}) resolved for {repair.user_id}")
        except (SQLAlchemyError, ValueError) as e:
            await self.db.rollback()
            await self.db.refresh(repair)
            repair.attempts = (repair.attempts or 0) + 1
            repair.error = str(e)
            await self.db.commit()
            logger.error(f"Repair {repair_id} ({repair.stage}) failed again: {e}")

        await self.db.refresh(repair)
        return repair
