"""
Unit Tests for EmailService

Covers:
1. Provider selection (Resend, SendGrid, console)
2. Payload shape per provider
3. Sandbox redirect
4. Failures surface as False / EmailDeliveryError
"""
import json

import httpx
import pytest

from app.core.config import get_settings
from app.core.exceptions import EmailDeliveryError
from app.services.email import (
    CREDENTIALS_SUBJECT,
    RESEND_API_URL,
    SENDGRID_API_URL,
    EmailService,
    render_credentials_email,
)


class Recorder:
    """MockTransport handler that records requests and answers with a fixed status."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"id": "msg_123"})


def service_with(recorder, **overrides) -> EmailService:
    settings = get_settings().model_copy(update=overrides)
    return EmailService(settings=settings, transport=httpx.MockTransport(recorder))


class TestProviders:

    async def test_resend_payload(self):
        recorder = Recorder()
        service = service_with(recorder, resend_api_key="re_test", sendgrid_api_key="sg_test")

        assert await service.send_credentials("hafiz@gmail.com", "Tmp!pass123", "Hafiz Rahim") is True

        request = recorder.requests[0]
        assert str(request.url) == RESEND_API_URL
        assert request.headers["Authorization"] == "Bearer re_test"
        body = json.loads(request.content)
        assert body["to"] == ["hafiz@gmail.com"]
        assert body["subject"] == CREDENTIALS_SUBJECT
        assert "Tmp!pass123" in body["text"]
        assert "Hafiz Rahim" in body["html"]

    async def test_sendgrid_payload(self):
        recorder = Recorder(status_code=202)
        service = service_with(recorder, resend_api_key=None, sendgrid_api_key="sg_test")

        assert await service.send_credentials("hafiz@gmail.com", "Tmp!pass123") is True

        request = recorder.requests[0]
        assert str(request.url) == SENDGRID_API_URL
        body = json.loads(request.content)
        assert body["personalizations"][0]["to"] == [{"email": "hafiz@gmail.com"}]
        assert [c["type"] for c in body["content"]] == ["text/plain", "text/html"]

    async def test_console_mode_sends_nothing(self):
        recorder = Recorder()
        service = service_with(recorder, resend_api_key=None, sendgrid_api_key=None)

        assert await service.send_credentials("hafiz@gmail.com", "Tmp!pass123") is True
        assert recorder.requests == []


class TestRedirect:

    async def test_redirect_overrides_recipient(self):
        recorder = Recorder()
        service = service_with(recorder, resend_api_key="re_test", email_redirect_to="delivered@resend.dev")

        await service.send_credentials("hafiz@gmail.com", "Tmp!pass123")

        body = json.loads(recorder.requests[0].content)
        assert body["to"] == ["delivered@resend.dev"]
        # The message still names the real account
        assert "hafiz@gmail.com" in body["text"]


class TestFailures:

    async def test_provider_error_returns_false(self):
        service = service_with(Recorder(status_code=500), resend_api_key="re_test")
        assert await service.send_credentials("hafiz@gmail.com", "Tmp!pass123") is False

    async def test_provider_error_raises_on_deliver(self):
        service = service_with(Recorder(status_code=422), resend_api_key="re_test")
        with pytest.raises(EmailDeliveryError):
            await service.deliver_credentials("hafiz@gmail.com", "Tmp!pass123")

    async def test_unreachable_provider_returns_false(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        settings = get_settings().model_copy(update={"resend_api_key": "re_test"})
        service = EmailService(settings=settings, transport=httpx.MockTransport(refuse))
        assert await service.send_credentials("hafiz@gmail.com", "Tmp!pass123") is False


class TestRendering:

    def test_html_is_escaped(self):
        html_content, text_content = render_credentials_email("a@gmail.com", "<b>&pw", "<script>x</script>")
        assert "<script>" not in html_content
        assert "&lt;b&gt;&amp;pw" in html_content
        assert "<b>&pw" in text_content

    def test_falls_back_to_email_as_name(self):
        _, text_content = render_credentials_email("a@gmail.com", "pw", None)
        assert "Hello a@gmail.com" in text_content
