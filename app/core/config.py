from functools import lru_cache
import os
from typing import List, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    debug: bool = True
    project_name: str = "PPMKFriends API"
    environment: str = "development"

    # Raw CORS origins string - read from env
    cors_origins_raw: Optional[str] = Field(
        default=None,
        alias="CORS_ORIGINS"
    )

    @computed_field
    @property
    def backend_cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from environment variable (comma-separated string)."""
        raw = self.cors_origins_raw
        if not raw:
            raw = os.environ.get("CORS_ORIGINS") or os.environ.get("BACKEND_CORS_ORIGINS") or ""

        if not raw or not raw.strip():
            return []

        origins = []
        for origin in raw.split(","):
            origin = origin.strip()
            if origin:
                # Normalize protocol to lowercase (Https -> https, Http -> http)
                if origin.lower().startswith("https://"):
                    origin = "https://" + origin[8:]
                elif origin.lower().startswith("http://"):
                    origin = "http://" + origin[7:]
                origins.append(origin.rstrip("/"))
        return origins

    database_url: str  # Required - no default, must be set in .env

    # Identity service (hosted auth with an admin API)
    # The service key is the privileged key allowed to call /auth/v1/admin/*.
    # The JWT secret verifies bearer tokens issued to signed-in users.
    identity_url: str = "http://localhost:54321"
    identity_service_key: Optional[str] = None
    identity_jwt_secret: str = "change-me"
    identity_jwt_algorithm: str = "HS256"
    identity_jwt_audience: Optional[str] = "authenticated"
    identity_timeout_seconds: float = 15.0

    # Transactional email
    # Provider is picked by whichever key is set: Resend first, then SendGrid,
    # otherwise messages are only logged.
    resend_api_key: Optional[str] = None
    sendgrid_api_key: Optional[str] = None
    email_from_address: str = "onboarding@resend.dev"
    email_from_name: str = "PPMKFriends"
    # Sandbox policy: when set, every delivery goes to this address instead
    # of the real recipient (e.g. "delivered@resend.dev" in testing mode).
    email_redirect_to: Optional[str] = None
    email_max_attempts: int = 2
    email_retry_wait_seconds: float = 1.0
    email_timeout_seconds: float = 15.0

    # Bulk import
    invitation_expiry_days: int = 30
    bulk_import_row_timeout_seconds: float = 60.0
    bulk_import_max_rows: int = 1000
    bulk_import_max_upload_bytes: int = 5 * 1024 * 1024

    # Rate limiting (slowapi)
    rate_limit_enabled: bool = True
    bulk_import_rate_limit: str = "10/minute"

    def get_identity_admin_url(self) -> str:
        """Base URL of the identity admin API."""
        return f"{self.identity_url.rstrip('/')}/auth/v1/admin"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
