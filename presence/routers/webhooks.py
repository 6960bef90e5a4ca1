# routers/webhooks.py
"""
Callback routes QStash delivers jobs to. Every route is wrapped with
signature verification; unauthenticated calls never reach a handler.
"""

from fastapi import APIRouter

from presence.core.qstash_auth import with_qstash_verification
from presence.schemas.queue_models import WEBHOOK_PATH_PREFIX, EmailJobPayload, JobType, UserJobPayload
from presence.services.job_handlers import (
    handle_analytics_job,
    handle_email_job,
    handle_subscription_check,
)

webhook_router = APIRouter(
    prefix=WEBHOOK_PATH_PREFIX,
    tags=["Queue Webhooks"],
    responses={
        400: {"description": "Invalid JSON body"},
        401: {"description": "Unauthorized - QStash signature rejected"},
    }
)

webhook_router.add_api_route(
    f"/{JobType.EMAIL.value}",
    with_qstash_verification(handle_email_job, EmailJobPayload),
    methods=["POST"],
    summary="Email job callback",
)
webhook_router.add_api_route(
    f"/{JobType.ANALYTICS.value}",
    with_qstash_verification(handle_analytics_job, UserJobPayload),
    methods=["POST"],
    summary="Analytics job callback",
)
webhook_router.add_api_route(
    f"/{JobType.SUBSCRIPTION_CHECK.value}",
    with_qstash_verification(handle_subscription_check, UserJobPayload),
    methods=["POST"],
    summary="Subscription check callback",
)
