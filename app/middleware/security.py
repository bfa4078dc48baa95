"""
Security middleware for the admin API.

Implements:
- Per-IP rate limits (slowapi); bulk account creation has its own limit
- Response hardening headers
- Audit log lines for admin and auth requests, tagged with a request id
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# RATE LIMITING
# =============================================================================

def get_client_ip(request: Request) -> str:
    """Client address, preferring the first X-Forwarded-For hop behind a proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    return get_remote_address(request)


def bulk_import_limit() -> str:
    """Limit for the endpoints that create accounts in bulk."""
    return get_settings().bulk_import_rate_limit


limiter = Limiter(
    key_func=get_client_ip,
    default_limits=["200/minute"],
    storage_uri="memory://",
    enabled=get_settings().rate_limit_enabled,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"429 for {get_client_ip(request)} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": f"Rate limit exceeded ({exc.detail}). Try again shortly."},
        headers={"Retry-After": "60"},
    )


# =============================================================================
# SECURITY HEADERS MIDDLEWARE
# =============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers on every response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "no-referrer"
        # Responses can carry plaintext temporary passwords
        response.headers["Cache-Control"] = "no-store"

        if get_settings().environment == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# =============================================================================
# AUDIT LOGGING MIDDLEWARE
# =============================================================================

class AuditLoggingMiddleware(BaseHTTPMiddleware):
    """Logs admin and auth requests, and every failed request."""

    AUDITED_PATHS = ("/api/admin/", "/api/auth/")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        start_time = time.time()
        request.state.request_id = request_id
        client_ip = get_client_ip(request)
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"[{request_id}] {request.method} {path} -> ERROR IP={client_ip} error={str(e)}")
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        if response.status_code >= 500:
            logger.error(f"[{request_id}] {request.method} {path} -> {response.status_code} ({duration_ms}ms) IP={client_ip}")
        elif response.status_code >= 400 or path.startswith(self.AUDITED_PATHS):
            logger.info(f"[{request_id}] {request.method} {path} -> {response.status_code} ({duration_ms}ms) IP={client_ip}")

        response.headers["X-Request-ID"] = request_id
        return response


# =============================================================================
# SETUP FUNCTION
# =============================================================================

def setup_security_middleware(app: FastAPI) -> None:
    """Attach the limiter, its 429 handler and both middlewares to the app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(AuditLoggingMiddleware)
    logger.info(f"Security middleware configured (rate limiting {'on' if limiter.enabled else 'off'})")
