from __future__ import annotations

import json

import httpx
import pytest

from mail_service.infrastructure.email.emailjs import EmailJSDeliverer, LoggingDeliverer

API_URL = "https://api.emailjs.com/api/v1.0/email/send"


def _deliverer(handler, private_key: str | None = "secret") -> tuple[EmailJSDeliverer, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    deliverer = EmailJSDeliverer(
        client,
        api_url=API_URL,
        service_id="service_x",
        public_key="public_y",
        private_key=private_key,
    )
    return deliverer, client


@pytest.mark.asyncio
async def test_posts_template_request():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text="OK")

    deliverer, client = _deliverer(handler)
    async with client:
        ok = await deliverer.send("template_welcome", {"customer_name": "Asha"})

    assert ok is True
    [request] = requests
    assert str(request.url) == API_URL
    assert json.loads(request.content) == {
        "service_id": "service_x",
        "template_id": "template_welcome",
        "user_id": "public_y",
        "template_params": {"customer_name": "Asha"},
        "accessToken": "secret",
    }


@pytest.mark.asyncio
async def test_access_token_omitted_without_private_key():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200)

    deliverer, client = _deliverer(handler, private_key=None)
    async with client:
        await deliverer.send("template_welcome", {})

    assert "accessToken" not in bodies[0]


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 429, 500])
async def test_non_200_is_a_failed_delivery(status_code):
    deliverer, client = _deliverer(lambda request: httpx.Response(status_code, text="nope"))
    async with client:
        assert await deliverer.send("template_welcome", {}) is False


@pytest.mark.asyncio
async def test_transport_errors_propagate():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    deliverer, client = _deliverer(handler)
    async with client:
        with pytest.raises(httpx.ConnectError):
            await deliverer.send("template_welcome", {})


@pytest.mark.asyncio
async def test_logging_deliverer_always_succeeds():
    assert await LoggingDeliverer().send("template_welcome", {"recipient_email": "a@example.com"})
