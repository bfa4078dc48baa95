from fastapi import APIRouter

from app.routers import auth, bulk_users, health, invitations, repairs, users

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(bulk_users.router, prefix="/admin/bulk-users", tags=["Bulk Users"])
api_router.include_router(users.router, prefix="/admin/users", tags=["Users"])
api_router.include_router(invitations.router, prefix="/admin/invitations", tags=["Invitations"])
api_router.include_router(repairs.router, prefix="/admin/repairs", tags=["Repairs"])
