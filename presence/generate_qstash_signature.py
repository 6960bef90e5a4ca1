#!/usr/bin/env python3
"""
QStash signature generator for exercising webhooks locally
Usage: python -m presence.generate_qstash_signature analytics '{"userId": "usr_123"}'
"""
import sys
import uuid
from datetime import datetime, timezone, timedelta
from typing import Union

import jwt

from presence.core.config import settings
from presence.core.qstash_auth import SIGNATURE_ISSUER, body_hash
from presence.schemas.queue_models import WEBHOOK_PATH_PREFIX

TOKEN_TTL_MINUTES = 5


def generate_qstash_signature(
    body: Union[str, bytes],
    url: str,
    signing_key: str,
    ttl_minutes: int = TOKEN_TTL_MINUTES,
) -> str:
    """Sign a callback exactly the way QStash does (HS256 JWT bound to url + body)."""
    now = datetime.now(timezone.utc)

    payload = {
        "iss": SIGNATURE_ISSUER,
        "sub": url,
        "exp": int((now + timedelta(minutes=ttl_minutes)).timestamp()),
        "nbf": int(now.timestamp()),
        "iat": int(now.timestamp()),
        "jti": f"jwt_{uuid.uuid4().hex}",
        "body": body_hash(body),
    }

    return jwt.encode(payload, signing_key, algorithm="HS256")


def main(argv) -> int:
    if len(argv) != 3:
        print(__doc__)
        return 1
    if not settings.QSTASH_CURRENT_SIGNING_KEY:
        print("QSTASH_CURRENT_SIGNING_KEY is not set")
        return 1

    job, body = argv[1], argv[2]
    url = f"{settings.QSTASH_BASE_URL.rstrip('/')}{WEBHOOK_PATH_PREFIX}/{job}"
    signature = generate_qstash_signature(body, url, settings.QSTASH_CURRENT_SIGNING_KEY)

    print("🔑 Generated QStash signature:")
    print("=" * 80)
    print(f"upstash-signature: {signature}")
    print("=" * 80)
    print(f"Expires: {datetime.now(timezone.utc) + timedelta(minutes=TOKEN_TTL_MINUTES)}")
    print("=" * 80)
    print("\n📋 curl:")
    print(f"curl -X POST '{url}' -H 'Content-Type: application/json' "
          f"-H 'upstash-signature: {signature}' --data '{body}'")
    print("=" * 80)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
