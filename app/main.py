from contextlib import asynccontextmanager
import asyncio
import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from app import models  # noqa: F401  registers tables on Base.metadata
from app.api.router import api_router
from app.core.config import get_settings
from app.core.db import check_database_connection, init_database
from app.middleware.security import setup_security_middleware

settings = get_settings()
logger = logging.getLogger(__name__)

db_initialized = False
db_error: str | None = None


@asynccontextmanager
async def lifespan(_: FastAPI):
    global db_initialized, db_error
    logger.info("[LIFESPAN] Starting application initialization...")

    async def initialize_database():
        """Initialize database in background - non-blocking for health checks."""
        global db_initialized, db_error
        try:
            logger.info("[LIFESPAN] Testing database connection...")
            if not await check_database_connection():
                db_error = "Database connection failed"
                logger.error(f"[LIFESPAN] ERROR: {db_error}")
                return

            logger.info("[LIFESPAN] Initializing database tables...")
            await asyncio.wait_for(init_database(), timeout=30.0)

            db_initialized = True
            logger.info("[LIFESPAN] Database initialization complete")
        except asyncio.TimeoutError:
            db_error = "Database initialization timed out after 30s"
            logger.error(f"[LIFESPAN] ERROR: {db_error}")
        except Exception as e:
            db_error = str(e)
            logger.error(f"[LIFESPAN] ERROR initializing database: {e}")

    # Health checks answer while the database is still connecting
    init_task = asyncio.create_task(initialize_database())

    if not settings.identity_service_key:
        logger.warning("[LIFESPAN] IDENTITY_SERVICE_KEY is not set; account creation will fail")

    logger.info("[LIFESPAN] Application startup complete - ready to accept requests")

    yield

    logger.info("[LIFESPAN] Shutting down...")
    if not init_task.done():
        init_task.cancel()
    logger.info("[LIFESPAN] Shutdown complete")


app = FastAPI(
    title=settings.project_name,
    debug=settings.debug,
    lifespan=lifespan,
)

logger.info(f"[CORS] Configured origins: {settings.backend_cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With", "X-Request-ID"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)

setup_security_middleware(app)

app.include_router(api_router, prefix="/api")


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    return {"status": "ok", "environment": settings.environment}


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """Health check endpoint - responds immediately, reports database status."""
    return {
        "status": "ok",
        "service": settings.project_name,
        "database_ready": db_initialized,
        "database_error": db_error,
    }


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict:
    """Readiness check - only returns ok when database is ready."""
    if not db_initialized:
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "database_ready": False, "error": db_error},
        )
    return {"status": "ready", "database_ready": True}
