# core/errors.py
"""
Error taxonomy for job dispatch and webhook verification.

None of these cross a public boundary: the publisher folds them into a
PublishResult and the verifier folds them into a VerificationResult. The
app-wide handler at the bottom covers everything else so callers always get
a stable JSON body instead of a stack trace.
"""

from typing import Any, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse

from presence.core.config import settings
from presence.core.logger import logger


class PresenceError(Exception):
    """Base exception for the portal API."""
    pass


class JobDispatchError(PresenceError):
    """A job could not be handed to the queue."""
    pass


class ValidationError(JobDispatchError):
    """Caller-supplied job payload or delay is invalid."""
    pass


class InvalidDelayFormat(ValidationError):
    """Delay string does not look like 30s, 5m, 2h or 1d."""
    pass


class InvalidDelayValue(ValidationError):
    """Delay string is well formed but its magnitude is zero."""
    pass


class NotConfiguredError(JobDispatchError):
    """Queue credentials are absent; publishing is disabled."""
    pass


class TransportError(JobDispatchError):
    """The queue client call itself failed (network, auth, quota)."""
    pass


class SignatureError(PresenceError):
    """Inbound webhook could not be authenticated."""
    pass


class MisconfigurationError(SignatureError):
    """Signing keys are missing in production."""
    pass


"""
Generic user-facing messages, keyed by status code.
Production responses never echo internal exception text.
"""
USER_MESSAGES: Dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "The provided data is invalid. Please check your input.",
    status.HTTP_401_UNAUTHORIZED: "Authentication failed. Please try again.",
    status.HTTP_429_TOO_MANY_REQUESTS: "Too many requests. Please try again later.",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "An unexpected error occurred. Please try again later.",
}


def safe_error_response(exc: Exception, production: bool) -> Dict[str, Any]:
    """
    Build a JSON-safe error body for an unexpected exception.

    In production only the generic message is returned; in development the
    exception text is included to speed up debugging.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, SignatureError):
        status_code = status.HTTP_401_UNAUTHORIZED

    message = USER_MESSAGES[status_code]
    if not production:
        message = str(exc) or message

    return {
        "status_code": status_code,
        "body": {
            "error": type(exc).__name__ if not production else "Error",
            "message": message,
        },
    }


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    app_settings = getattr(request.app.state, "settings", settings)
    safe = safe_error_response(exc, production=app_settings.IS_PRODUCTION)
    return JSONResponse(status_code=safe["status_code"], content=safe["body"])
