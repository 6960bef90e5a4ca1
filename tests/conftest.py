"""
Shared fixtures for the job dispatch and webhook test suite.

Example usage:
    def test_something(make_client, signed_headers):
        client = make_client(QSTASH_CURRENT_SIGNING_KEY=CURRENT_KEY)
"""

from typing import Dict, Optional, Union

import pytest
from fastapi.testclient import TestClient

from helpers import CALLBACK_BASE, CURRENT_KEY, TEST_SERVER, FakeEmailSender, FakeQStashClient, make_settings
from presence.core.rate_limiter import limiter
from presence.generate_qstash_signature import generate_qstash_signature
from presence.main import create_app
from presence.services.job_publisher import JobPublisher


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """slowapi counters live in process memory and are shared by every app instance."""
    limiter.reset()
    yield


@pytest.fixture
def fake_qstash():
    return FakeQStashClient()


@pytest.fixture
def publisher(fake_qstash):
    return JobPublisher(client=fake_qstash, callback_base_url=CALLBACK_BASE)


@pytest.fixture
def make_app():
    """Build an app from explicit settings, swapping in fakes for outbound clients."""

    def _make(qstash: Optional[FakeQStashClient] = None, email: Optional[FakeEmailSender] = None, **overrides):
        app = create_app(make_settings(**overrides))
        app.state.qstash_client = qstash
        app.state.job_publisher = JobPublisher(client=qstash, callback_base_url=CALLBACK_BASE)
        app.state.email_sender = email or FakeEmailSender()
        return app

    return _make


@pytest.fixture
def make_client(make_app):
    def _client(**kwargs) -> TestClient:
        return TestClient(make_app(**kwargs))

    return _client


@pytest.fixture
def signed_headers():
    def _sign(body: Union[str, bytes], path: str, key: str = CURRENT_KEY, **extra) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "upstash-signature": generate_qstash_signature(body, f"{TEST_SERVER}{path}", key),
        }
        headers.update(extra)
        return headers

    return _sign
