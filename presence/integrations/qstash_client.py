# integrations/qstash_client.py
import json
from typing import Any, Dict, Optional, Union

import httpx

from presence.core.logger import logger
from presence.schemas.queue_models import JobEnvelope


class QStashClient:
    """
    Thin async client for the QStash publish API.

    Only constructed when a token is configured; the publisher treats a
    missing client as "not configured" rather than failing at import time.
    """

    def __init__(
        self,
        token: str,
        *,
        api_url: str = "https://qstash.upstash.io",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token:
            raise ValueError("QStash token is required")
        self.api_url = api_url.rstrip("/")
        self._http = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def publish_json(self, envelope: JobEnvelope) -> Union[str, Dict[str, Any]]:
        """
        Publish a JSON job to QStash, which later POSTs it to the envelope's
        destination URL. Returns the decoded response (normally {"messageId": ...}).
        Raises httpx errors on transport failure or non-2xx status.
        """
        body = json.dumps(envelope.body, separators=(",", ":"), ensure_ascii=False)
        headers = {"Content-Type": "application/json"}
        if envelope.delay is not None:
            headers["Upstash-Delay"] = str(envelope.delay)

        logger.debug(
            "QStash publish job=%s bytes=%d delay=%s",
            envelope.api.name, len(body), envelope.delay,
        )

        resp = await self._http.post(
            f"{self.api_url}/v2/publish/{envelope.destination_url}",
            content=body.encode("utf-8"),
            headers=headers,
        )
        resp.raise_for_status()
        return resp.json()

    async def aclose(self) -> None:
        await self._http.aclose()
