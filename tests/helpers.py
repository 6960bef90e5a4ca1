"""
Test helpers: signing keys, fake outbound clients and settings builders.
"""

from typing import Any, Dict, List, Optional, Union

from presence.core.config import Settings
from presence.schemas.queue_models import JobEnvelope

CURRENT_KEY = "sig_current_0123456789abcdefghijklmnopqrstuv"
NEXT_KEY = "sig_next_0123456789abcdefghijklmnopqrstuvwxyz"
OTHER_KEY = "sig_attacker_0123456789abcdefghijklmnopqrstu"

CALLBACK_BASE = "https://portal.example.com"
TEST_SERVER = "http://testserver"


class FakeQStashClient:
    """Stands in for QStashClient; records every envelope it is given."""

    def __init__(self, response: Union[str, Dict[str, Any], None] = None, error: Optional[Exception] = None):
        self.response = {"messageId": "msg_test_1"} if response is None else response
        self.error = error
        self.envelopes: List[JobEnvelope] = []

    async def publish_json(self, envelope: JobEnvelope):
        self.envelopes.append(envelope)
        if self.error is not None:
            raise self.error
        return self.response

    async def aclose(self) -> None:
        pass


class FakeEmailSender:
    def __init__(self, configured: bool = True, error: Optional[Exception] = None):
        self.configured = configured
        self.error = error
        self.sent: List[Dict[str, str]] = []

    async def send_email(self, to: str, subject: str, html: str) -> Dict[str, Any]:
        if self.error is not None:
            raise self.error
        self.sent.append({"to": to, "subject": subject, "html": html})
        return {"id": f"email_{len(self.sent)}"}

    async def aclose(self) -> None:
        pass


def make_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "development",
        "QSTASH_TOKEN": None,
        "QSTASH_BASE_URL": CALLBACK_BASE,
        "QSTASH_CURRENT_SIGNING_KEY": None,
        "QSTASH_NEXT_SIGNING_KEY": None,
        "RESEND_API_KEY": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)
