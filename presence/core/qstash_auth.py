# core/qstash_auth.py
"""
QStash webhook verification.

Every callback QStash delivers carries an `upstash-signature` header: an
HS256 JWT signed with the project's signing key whose claims bind the
delivery to one URL (`sub`) and one body (`body` = base64url SHA-256 of the
raw bytes). Verifying it keeps forged callbacks from injecting jobs.

Two keys are accepted at once (current + next) so callbacks signed with
either side of a key rotation still validate.
"""

import base64
import hashlib
import hmac
import json
from typing import Any, Awaitable, Callable, List, Optional, Type, Union

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ValidationError as PydanticValidationError

from presence.core.config import Settings
from presence.core.errors import MisconfigurationError, SignatureError
from presence.core.logger import logger
from presence.schemas.queue_models import WebhookMetadata

SIGNATURE_HEADER = "upstash-signature"
SIGNATURE_ISSUER = "Upstash"
REQUIRED_CLAIMS = ["iss", "sub", "exp", "nbf", "body"]

WebhookHandler = Callable[[Any, Request], Awaitable[Response]]


class SigningKeyPair(BaseModel):
    """Process-wide signing keys; rotation requires a restart."""
    current: str
    next: Optional[str] = None

    @property
    def keys(self) -> List[str]:
        keys = [self.current]
        if self.next and self.next != self.current:
            keys.append(self.next)
        return keys


class VerificationResult(BaseModel):
    valid: bool
    error: Optional[str] = None


def body_hash(raw_body: Union[str, bytes]) -> str:
    """base64url SHA-256 of the exact bytes received, without padding."""
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    digest = hashlib.sha256(raw_body).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class WebhookVerifier:
    """
    Authenticates inbound QStash callbacks.

    The production flag is injected at construction so the fail-closed and
    fail-open branches can be exercised without touching the environment.
    """

    def __init__(
        self,
        signing_keys: Optional[SigningKeyPair],
        *,
        production: bool,
        clock_tolerance_secs: int = 0,
    ):
        self.signing_keys = signing_keys
        self.production = production
        self.clock_tolerance_secs = clock_tolerance_secs

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebhookVerifier":
        signing_keys = None
        if settings.QSTASH_CURRENT_SIGNING_KEY:
            signing_keys = SigningKeyPair(
                current=settings.QSTASH_CURRENT_SIGNING_KEY,
                next=settings.QSTASH_NEXT_SIGNING_KEY or None,
            )
        else:
            logger.warning("QStash signing keys not configured. Webhook verification disabled.")
        return cls(
            signing_keys,
            production=settings.IS_PRODUCTION,
            clock_tolerance_secs=settings.QSTASH_CLOCK_TOLERANCE_SECS,
        )

    @property
    def enabled(self) -> bool:
        return self.signing_keys is not None

    def verify(self, request: Any, raw_body: Union[str, bytes]) -> VerificationResult:
        """
        Verify a QStash webhook request.

        Args:
            request: incoming request (anything exposing `headers` and `url`)
            raw_body: the body exactly as received

        Returns:
            VerificationResult: never raises; failures become valid=False
        """
        try:
            if self.signing_keys is None:
                return self._unconfigured()

            signature = request.headers.get(SIGNATURE_HEADER)
            if not signature:
                return VerificationResult(valid=False, error=f"Missing {SIGNATURE_HEADER} header")

            self._verify_signature(signature, str(request.url), raw_body)
            return VerificationResult(valid=True)

        except SignatureError as e:
            return VerificationResult(valid=False, error=str(e))
        except Exception as e:
            logger.error(f"QStash verification error: {e}")
            return VerificationResult(valid=False, error=str(e) or "Verification failed")

    def _unconfigured(self) -> VerificationResult:
        if self.production:
            raise MisconfigurationError("QStash verification not configured for production")
        logger.warning("QStash verification skipped in development")
        return VerificationResult(valid=True)

    def _verify_signature(self, signature: str, url: str, raw_body: Union[str, bytes]) -> None:
        reasons = []
        for key in self.signing_keys.keys:
            try:
                self._verify_with_key(key, signature, url, raw_body)
                return
            except SignatureError as e:
                reasons.append(str(e))

        logger.warning(
            "QStash signature rejected",
            extra={"auth_result": "invalid_signature", "reasons": reasons},
        )
        raise SignatureError("Invalid QStash signature")

    def _verify_with_key(self, key: str, signature: str, url: str, raw_body: Union[str, bytes]) -> None:
        try:
            claims = jwt.decode(
                signature,
                key,
                algorithms=["HS256"],
                issuer=SIGNATURE_ISSUER,
                leeway=self.clock_tolerance_secs,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise SignatureError("signature has expired")
        except jwt.ImmatureSignatureError:
            raise SignatureError("signature is not yet valid")
        except jwt.InvalidIssuerError:
            raise SignatureError("invalid signature issuer")
        except jwt.InvalidTokenError as e:
            raise SignatureError(f"invalid token: {e}")

        if claims["sub"] != url:
            raise SignatureError(f"invalid subject: {claims['sub']}, want: {url}")

        claimed = str(claims["body"]).rstrip("=")
        if not hmac.compare_digest(claimed.encode("utf-8"), body_hash(raw_body).encode("ascii")):
            raise SignatureError("body hash does not match")


def get_qstash_metadata(request: Any) -> WebhookMetadata:
    """
    Read queue-assigned delivery headers. Pure header read, available even on
    unauthenticated requests for logging; not proof of authenticity.
    """
    headers = request.headers
    return WebhookMetadata(
        message_id=headers.get("upstash-message-id") or None,
        retry_count=_parse_int(headers.get("upstash-retried"), default=0),
        schedule_id=headers.get("upstash-schedule-id") or None,
        not_before=_parse_int(headers.get("upstash-not-before"), default=None),
    )


def _parse_int(value: Optional[str], default: Optional[int]) -> Optional[int]:
    if value is None or not str(value).strip():
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def with_qstash_verification(
    handler: WebhookHandler,
    model: Optional[Type[BaseModel]] = None,
    verifier: Optional[WebhookVerifier] = None,
) -> Callable[[Request], Awaitable[Response]]:
    """
    Wrap a job handler with QStash verification.

    The body is read once; the same bytes feed both the signature check and
    JSON parsing. Without an explicit verifier the one stored on
    `app.state.webhook_verifier` at startup is used.
    """

    async def endpoint(request: Request) -> Response:
        raw_body = await request.body()

        active = verifier or request.app.state.webhook_verifier
        verification = active.verify(request, raw_body)

        if not verification.valid:
            logger.error(f"QStash verification failed: {verification.error}")
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "Unauthorized", "message": verification.error},
            )

        try:
            payload = json.loads(raw_body)
        except ValueError:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Invalid JSON body"},
            )

        if model is not None:
            try:
                payload = model.model_validate(payload)
            except PydanticValidationError as e:
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={
                        "error": "Invalid job payload",
                        "detail": e.errors(include_url=False, include_context=False, include_input=False),
                    },
                )

        return await handler(payload, request)

    endpoint.__name__ = getattr(handler, "__name__", "qstash_webhook")
    endpoint.__doc__ = handler.__doc__
    return endpoint
