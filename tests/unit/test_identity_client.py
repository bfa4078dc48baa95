"""
Unit Tests for IdentityAdminClient

Covers:
1. create_user request shape and id extraction
2. Provider error messages
3. Unreachable service and missing key
"""
import json

import httpx
import pytest

from app.core.config import get_settings
from app.core.exceptions import IdentityServiceError
from app.services.identity import IdentityAdminClient


def client_with(handler, **overrides) -> IdentityAdminClient:
    settings = get_settings().model_copy(update=overrides)
    return IdentityAdminClient(settings=settings, transport=httpx.MockTransport(handler))


class TestCreateUser:

    async def test_request_shape(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "9c1d2e3f-0000-4000-8000-000000000001"})

        client = client_with(handler)
        user_id = await client.create_user("nur.aisyah@gmail.com", "Xy7!abcdEF12", "Nur Aisyah")

        assert user_id == "9c1d2e3f-0000-4000-8000-000000000001"
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "http://identity.test/auth/v1/admin/users"
        assert request.headers["apikey"] == "test-service-key"
        assert request.headers["Authorization"] == "Bearer test-service-key"
        body = json.loads(request.content)
        assert body["email_confirm"] is True
        assert body["user_metadata"] == {"username": "nur.aisyah", "display_name": "Nur Aisyah"}

    async def test_nested_user_id(self):
        client = client_with(lambda request: httpx.Response(200, json={"user": {"id": "abc"}}))
        assert await client.create_user("a@gmail.com", "pw") == "abc"

    async def test_missing_id_is_an_error(self):
        client = client_with(lambda request: httpx.Response(200, json={}))
        with pytest.raises(IdentityServiceError):
            await client.create_user("a@gmail.com", "pw")


class TestErrors:

    async def test_provider_message_is_surfaced(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"msg": "A user with this email address has already been registered"})

        client = client_with(handler)
        with pytest.raises(IdentityServiceError) as exc_info:
            await client.create_user("a@gmail.com", "pw")

        assert str(exc_info.value) == "A user with this email address has already been registered"
        assert exc_info.value.status_code == 422

    async def test_plain_text_error(self):
        client = client_with(lambda request: httpx.Response(500, text="upstream exploded"))
        with pytest.raises(IdentityServiceError, match="upstream exploded"):
            await client.create_user("a@gmail.com", "pw")

    async def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = client_with(handler)
        with pytest.raises(IdentityServiceError, match="unreachable"):
            await client.create_user("a@gmail.com", "pw")

    async def test_missing_service_key(self):
        calls = []
        client = client_with(lambda request: calls.append(request), identity_service_key=None)

        with pytest.raises(IdentityServiceError, match="not configured"):
            await client.create_user("a@gmail.com", "pw")
        assert calls == []


class TestUpdatePassword:

    async def test_put_to_user(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "abc"})

        await client_with(handler).update_user_password("abc", "New!pass123")

        assert seen[0].method == "PUT"
        assert seen[0].url.path == "/auth/v1/admin/users/abc"
        assert json.loads(seen[0].content) == {"password": "New!pass123"}
