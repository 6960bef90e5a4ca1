"""Wire-format tests for QStashClient against a mocked QStash API."""

import json

import httpx
import pytest

from helpers import CALLBACK_BASE
from presence.integrations.qstash_client import QStashClient
from presence.schemas.queue_models import ApiTarget, JobEnvelope
from presence.services.delay import parse_delay


def make_envelope(delay=None) -> JobEnvelope:
    return JobEnvelope(
        api=ApiTarget(name="email", base_url=CALLBACK_BASE),
        body={"email": "user@example.com", "subject": "Héllo"},
        delay=parse_delay(delay) if delay else None,
    )


@pytest.mark.asyncio
async def test_publish_request_shape():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(201, json={"messageId": "msg_123"})

    client = QStashClient("tok_abc", transport=httpx.MockTransport(handler))
    try:
        response = await client.publish_json(make_envelope("5m"))
    finally:
        await client.aclose()

    request = captured["request"]
    assert response == {"messageId": "msg_123"}
    assert request.method == "POST"
    assert request.url.host == "qstash.upstash.io"
    assert request.url.path.startswith("/v2/publish/")
    assert str(request.url).endswith("portal.example.com/api/queue/email")
    assert request.headers["authorization"] == "Bearer tok_abc"
    assert request.headers["content-type"] == "application/json"
    assert request.headers["upstash-delay"] == "5m"
    assert json.loads(request.content.decode("utf-8")) == {"email": "user@example.com", "subject": "Héllo"}


@pytest.mark.asyncio
async def test_no_delay_header_without_delay():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["headers"] = request.headers
        return httpx.Response(201, json={"messageId": "msg_1"})

    client = QStashClient("tok", api_url="https://qstash.example.test/", transport=httpx.MockTransport(handler))
    try:
        await client.publish_json(make_envelope())
    finally:
        await client.aclose()

    assert "upstash-delay" not in captured["headers"]


@pytest.mark.asyncio
async def test_http_error_status_raises():
    client = QStashClient(
        "tok",
        transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"error": "invalid token"})),
    )
    try:
        with pytest.raises(httpx.HTTPStatusError):
            await client.publish_json(make_envelope())
    finally:
        await client.aclose()


def test_token_required():
    with pytest.raises(ValueError):
        QStashClient("")


def test_envelope_rejects_non_json_body():
    with pytest.raises(ValueError, match="JSON"):
        JobEnvelope(api=ApiTarget(name="email", base_url=CALLBACK_BASE), body={"when": object()})


def test_envelope_rejects_empty_job_name():
    with pytest.raises(ValueError):
        ApiTarget(name="", base_url=CALLBACK_BASE)
