from fastapi import APIRouter

router = APIRouter()


@router.get("/healthz", summary="Liveness check")
async def health_check() -> dict[str, str]:
    return {"status": "ok", "service": "ppmkfriends-provisioning"}
