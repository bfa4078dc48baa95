"""
Grant a role to an identity directly in the database.

Used to bootstrap the first superadmin, who then manages roles from the
admin panel.

Usage:
    python scripts/grant_role.py <identity-uuid> superadmin
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.db import AsyncSessionFactory
from app.core.rbac import AppRole, parse_role
from app.services.provisioning_service import apply_role


def parse_args():
    parser = argparse.ArgumentParser(description="Assign a role to a user")
    parser.add_argument("user_id", help="Identity id of the user")
    parser.add_argument("role", choices=[role.value for role in AppRole])
    return parser.parse_args()


async def grant_role(user_id: str, role: AppRole) -> None:
    async with AsyncSessionFactory() as db:
        await apply_role(db, user_id, role, assigned_by=None)
        await db.commit()
    print(f"{user_id} is now {role.value}")


if __name__ == "__main__":
    args = parse_args()
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(grant_role(args.user_id, parse_role(args.role)))
