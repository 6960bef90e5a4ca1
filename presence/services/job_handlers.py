"""
Handlers for jobs QStash delivers back to the portal.

Each runs only after `with_qstash_verification` has authenticated the
callback and parsed the body. Non-2xx responses make QStash retry.
"""

import html

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response

from presence.core.logger import logger
from presence.core.qstash_auth import get_qstash_metadata
from presence.integrations.resend_client import ResendClient
from presence.schemas.queue_models import EmailJobPayload, UserJobPayload
from presence.services.job_publisher import JobPublisher


async def handle_email_job(payload: EmailJobPayload, request: Request) -> Response:
    """Send a queued email through Resend."""
    metadata = get_qstash_metadata(request)
    sender: ResendClient = request.app.state.email_sender

    if not sender.configured:
        logger.error(
            "Email job received but Resend is not configured",
            extra={"qstash_message_id": metadata.message_id},
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "Email provider not configured"},
        )

    subject = html.escape(payload.subject)
    try:
        result = await sender.send_email(
            to=payload.email,
            subject=payload.subject,
            html=f"<h1>{subject}</h1><p>This is an automated email.</p>",
        )
    except Exception as e:
        logger.error(
            f"Email queue error: {e}",
            extra={"qstash_message_id": metadata.message_id, "retry_count": metadata.retry_count},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to send email"},
        )

    logger.info(
        "Email sent successfully id=%s qstash_msg_id=%s retried=%d",
        result.get("id"), metadata.message_id, metadata.retry_count,
    )
    return JSONResponse(content={"success": True, "messageId": result.get("id")})


async def handle_analytics_job(payload: UserJobPayload, request: Request) -> Response:
    metadata = get_qstash_metadata(request)
    logger.info(
        "Analytics job processed user_id=%s qstash_msg_id=%s retried=%d",
        payload.user_id, metadata.message_id, metadata.retry_count,
    )
    return JSONResponse(content={"success": True})


async def handle_subscription_check(payload: UserJobPayload, request: Request) -> Response:
    """
    Daily subscription check.

    One-off deliveries enqueue the next day's check themselves; deliveries
    driven by a QStash schedule (upstash-schedule-id present) already recur.
    Retried deliveries (upstash-retried > 0) do not enqueue again: the first
    attempt already did, and a second enqueue would fork the daily chain.
    """
    metadata = get_qstash_metadata(request)
    logger.info(
        "Subscription check user_id=%s qstash_msg_id=%s schedule_id=%s retried=%d",
        payload.user_id, metadata.message_id, metadata.schedule_id, metadata.retry_count,
    )

    content = {"success": True}
    if metadata.retry_count > 0:
        logger.info(f"Retried subscription check; next check left to the first attempt (retried={metadata.retry_count})")
    elif metadata.schedule_id is None:
        publisher: JobPublisher = request.app.state.job_publisher
        next_check = await publisher.schedule_subscription_check(payload.user_id)
        if next_check.ok:
            content["nextCheckId"] = next_check.id
        else:
            # The check itself succeeded; a 5xx here would only re-run it.
            logger.warning(f"Could not enqueue next subscription check: {next_check.error}")
            content["nextCheckError"] = next_check.error

    return JSONResponse(content=content)
