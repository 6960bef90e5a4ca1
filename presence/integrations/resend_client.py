# integrations/resend_client.py
from typing import Any, Dict, Optional

import httpx

from presence.core.errors import NotConfiguredError
from presence.core.logger import logger


class ResendClient:
    """Minimal async client for the Resend transactional email API."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        from_address: str,
        api_url: str = "https://api.resend.com",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.from_address = from_address
        self.api_url = api_url.rstrip("/")
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def send_email(self, to: str, subject: str, html: str) -> Dict[str, Any]:
        """
        Send one email. Returns the provider response ({"id": ...}).
        Raises NotConfiguredError without an API key and httpx errors on failure.
        """
        if not self.configured:
            raise NotConfiguredError("Resend not configured: RESEND_API_KEY is not set")

        resp = await self._http.post(
            f"{self.api_url}/emails",
            json={
                "from": self.from_address,
                "to": [to],
                "subject": subject,
                "html": html,
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        resp.raise_for_status()
        data = resp.json()
        logger.info("Resend email accepted id=%s", data.get("id"))
        return data

    async def aclose(self) -> None:
        await self._http.aclose()
