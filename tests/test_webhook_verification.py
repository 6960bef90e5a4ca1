"""
Tests for QStash signature verification, the fail-closed policy and
delivery metadata.
"""

import time
from types import SimpleNamespace

import jwt
import pytest

from helpers import CURRENT_KEY, NEXT_KEY, OTHER_KEY, make_settings
from presence.core.qstash_auth import SigningKeyPair, WebhookVerifier, body_hash, get_qstash_metadata
from presence.generate_qstash_signature import generate_qstash_signature

URL = "https://portal.example.com/api/queue/email"
BODY = '{"email":"a@b.com","subject":"hi"}'


def make_request(signature=None, url=URL, **headers):
    if signature is not None:
        headers["upstash-signature"] = signature
    return SimpleNamespace(headers=headers, url=url)


def verifier(current=CURRENT_KEY, next_key=None, production=False, **kwargs) -> WebhookVerifier:
    return WebhookVerifier(SigningKeyPair(current=current, next=next_key), production=production, **kwargs)


def forge(key=CURRENT_KEY, **claims) -> str:
    now = int(time.time())
    payload = {
        "iss": "Upstash",
        "sub": URL,
        "exp": now + 300,
        "nbf": now,
        "iat": now,
        "jti": "jwt_test",
        "body": body_hash(BODY),
    }
    payload.update(claims)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, key, algorithm="HS256")


# ============================================================================
# FAIL-CLOSED / FAIL-OPEN
# ============================================================================

def test_no_keys_in_production_fails_closed():
    result = WebhookVerifier(None, production=True).verify(make_request(), BODY)

    assert not result.valid
    assert "not configured for production" in result.error


def test_no_keys_outside_production_fails_open():
    result = WebhookVerifier(None, production=False).verify(make_request(), BODY)

    assert result.valid
    assert result.error is None


def test_from_settings_reads_environment_flag():
    prod = WebhookVerifier.from_settings(make_settings(ENVIRONMENT="production"))
    dev = WebhookVerifier.from_settings(make_settings(ENVIRONMENT="development"))

    assert prod.production and not prod.enabled
    assert not dev.production
    assert not prod.verify(make_request(), BODY).valid
    assert dev.verify(make_request(), BODY).valid


def test_from_settings_builds_key_pair():
    v = WebhookVerifier.from_settings(
        make_settings(QSTASH_CURRENT_SIGNING_KEY=CURRENT_KEY, QSTASH_NEXT_SIGNING_KEY=NEXT_KEY)
    )

    assert v.enabled
    assert v.signing_keys.keys == [CURRENT_KEY, NEXT_KEY]


# ============================================================================
# SIGNATURES
# ============================================================================

@pytest.mark.parametrize("production", [True, False])
def test_missing_signature_header(production):
    result = verifier(production=production).verify(make_request(), BODY)

    assert not result.valid
    assert "signature" in result.error


def test_valid_signature():
    signature = generate_qstash_signature(BODY, URL, CURRENT_KEY)

    assert verifier().verify(make_request(signature), BODY).valid


def test_bytes_body_is_verified_as_received():
    signature = generate_qstash_signature(BODY.encode("utf-8"), URL, CURRENT_KEY)

    assert verifier().verify(make_request(signature), BODY.encode("utf-8")).valid


def test_signature_from_next_key_accepted_during_rotation():
    signature = generate_qstash_signature(BODY, URL, NEXT_KEY)

    assert verifier(next_key=NEXT_KEY).verify(make_request(signature), BODY).valid
    assert not verifier().verify(make_request(signature), BODY).valid


def test_signature_from_unknown_key_rejected():
    signature = generate_qstash_signature(BODY, URL, OTHER_KEY)

    result = verifier(next_key=NEXT_KEY).verify(make_request(signature), BODY)

    assert not result.valid
    assert result.error == "Invalid QStash signature"


def test_tampered_body_rejected():
    signature = generate_qstash_signature(BODY, URL, CURRENT_KEY)
    reserialized = '{"email": "a@b.com", "subject": "hi"}'

    assert not verifier().verify(make_request(signature), reserialized).valid
    assert not verifier().verify(make_request(signature), BODY.replace("hi", "pwned")).valid


def test_wrong_url_rejected():
    signature = generate_qstash_signature(BODY, URL, CURRENT_KEY)
    request = make_request(signature, url="https://portal.example.com/api/queue/analytics")

    assert not verifier().verify(request, BODY).valid


def test_expired_signature_rejected():
    signature = forge(exp=int(time.time()) - 60, nbf=int(time.time()) - 600, iat=int(time.time()) - 600)

    assert not verifier().verify(make_request(signature), BODY).valid


def test_clock_tolerance_allows_small_skew():
    signature = forge(exp=int(time.time()) - 5, nbf=int(time.time()) - 600, iat=int(time.time()) - 600)

    assert verifier(clock_tolerance_secs=60).verify(make_request(signature), BODY).valid


def test_wrong_issuer_rejected():
    assert not verifier().verify(make_request(forge(iss="Attacker")), BODY).valid


def test_missing_body_claim_rejected():
    assert not verifier().verify(make_request(forge(body=None)), BODY).valid


def test_padded_body_claim_accepted():
    signature = forge(body=body_hash(BODY) + "=")

    assert verifier().verify(make_request(signature), BODY).valid


def test_garbage_signature_rejected():
    result = verifier().verify(make_request("not-a-jwt"), BODY)

    assert not result.valid
    assert "signature" in result.error.lower()


def test_unexpected_errors_become_rejections():
    class ExplodingHeaders:
        def get(self, name):
            raise RuntimeError("header store unavailable")

    request = SimpleNamespace(headers=ExplodingHeaders(), url=URL)

    result = verifier().verify(request, BODY)

    assert not result.valid
    assert result.error == "header store unavailable"


def test_duplicate_rotation_key_is_tried_once():
    assert SigningKeyPair(current=CURRENT_KEY, next=CURRENT_KEY).keys == [CURRENT_KEY]


# ============================================================================
# METADATA
# ============================================================================

def test_metadata_defaults():
    metadata = get_qstash_metadata(make_request())

    assert metadata.message_id is None
    assert metadata.retry_count == 0
    assert metadata.schedule_id is None
    assert metadata.not_before is None


def test_metadata_from_headers():
    request = make_request(**{
        "upstash-message-id": "msg_1",
        "upstash-retried": "3",
        "upstash-schedule-id": "scd_9",
        "upstash-not-before": "1760000000",
    })

    metadata = get_qstash_metadata(request)

    assert metadata.message_id == "msg_1"
    assert metadata.retry_count == 3
    assert metadata.schedule_id == "scd_9"
    assert metadata.not_before == 1760000000


def test_metadata_tolerates_garbage_numbers():
    metadata = get_qstash_metadata(make_request(**{"upstash-retried": "abc", "upstash-not-before": "soon"}))

    assert metadata.retry_count == 0
    assert metadata.not_before is None
