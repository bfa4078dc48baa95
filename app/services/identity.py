"""
Client for the identity service admin API.

Accounts live in the hosted identity service, not in our database. Creating
one needs the privileged service key, so this client only runs server-side.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import Settings, get_settings
from app.core.exceptions import IdentityServiceError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Pull the provider's human-readable error out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Identity service returned {response.status_code}"

    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            value = body.get(key)
            if value:
                return str(value)
    return f"Identity service returned {response.status_code}"


class IdentityAdminClient:
    """Thin async wrapper over /auth/v1/admin/users."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        key = self.settings.identity_service_key or ""
        return {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.settings.identity_service_key:
            raise IdentityServiceError("Identity service key is not configured")

        url = f"{self.settings.get_identity_admin_url()}{path}"
        try:
            async with httpx.AsyncClient(
                transport=self.transport,
                timeout=self.settings.identity_timeout_seconds,
            ) as client:
                response = await client.request(method, url, headers=self._headers(), json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Identity service request failed: {method} {path}: {e}")
            raise IdentityServiceError(f"Identity service unreachable: {str(e)}")

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"Identity service rejected {method} {path} ({response.status_code}): {message}")
            raise IdentityServiceError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError:
            raise IdentityServiceError("Identity service returned an invalid response", response.status_code)

    async def create_user(self, email: str, password: str, full_name: Optional[str] = None) -> str:
        """
        Create a pre-confirmed account and return its identity id.

        The username metadata is the local part of the email. Raises
        IdentityServiceError with the provider's message on rejection
        (e.g. the email is already registered).
        """
        payload = {
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": {
                "username": email.split("@")[0],
                "display_name": full_name,
            },
        }
        body = await self._request("POST", "/users", payload)

        user_id = body.get("id") or (body.get("user") or {}).get("id")
        if not user_id:
            raise IdentityServiceError("Identity service did not return a user id")
        logger.info(f"Identity created for {email}: {user_id}")
        return str(user_id)

    async def update_user_password(self, user_id: str, password: str) -> None:
        """Replace an account's password."""
        await self._request("PUT", f"/users/{user_id}", {"password": password})
        logger.info(f"Identity password updated for {user_id}")
