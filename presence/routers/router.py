# routers/router.py
"""
FastAPI Router for job scheduling and service health
"""

from fastapi import APIRouter, Depends, Request, status

from presence.core.logger import logger
from presence.core.rate_limiter import limit_param, limiter
from presence.schemas.queue_models import PublishResult
from presence.schemas.request_models import EmailJobRequest, HealthResponse, UserJobRequest
from presence.services.job_publisher import JobPublisher


# ============================================================================
# ROUTER CONFIGURATION
# ============================================================================

router = APIRouter(
    prefix="/api/v1",
    tags=["Jobs"],
    responses={
        429: {"description": "Too Many Requests"},
        500: {"description": "Internal Server Error"}
    }
)


def get_job_publisher(request: Request) -> JobPublisher:
    return request.app.state.job_publisher


# ============================================================================
# HEALTH CHECK ENDPOINTS
# ============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Service Health Check",
    description="Reports which integrations are configured"
)
@limiter.limit(limit_param)
async def check_health(request: Request) -> HealthResponse:
    """
    Configuration-level health check. No network calls are made, so a
    missing queue or email integration degrades the status instead of failing.
    """
    state = request.app.state
    settings = state.settings

    health_status = HealthResponse(
        status="healthy",
        message="Ethereal Presence API is operational",
        environment=settings.ENVIRONMENT,
    )

    health_status.queue_status = "configured" if state.job_publisher.configured else "disabled"
    health_status.email_status = "configured" if state.email_sender.configured else "disabled"

    if state.webhook_verifier.enabled:
        health_status.verification_status = "enabled"
    elif settings.IS_PRODUCTION:
        health_status.verification_status = "misconfigured"
    else:
        health_status.verification_status = "disabled"

    if "disabled" in (health_status.queue_status, health_status.email_status) or \
            health_status.verification_status != "enabled":
        health_status.status = "degraded"

    return health_status


# ============================================================================
# JOB SCHEDULING ENDPOINTS
# ============================================================================
# Always 200 with a PublishResult body; callers branch on `ok`.

@router.post(
    "/jobs/email",
    response_model=PublishResult,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Schedule Email Job",
    description="Queue an email for delivery, optionally delayed"
)
@limiter.limit(limit_param)
async def schedule_email(
    request: Request,
    body: EmailJobRequest,
    publisher: JobPublisher = Depends(get_job_publisher)
) -> PublishResult:
    result = await publisher.schedule_email_job(body.email, body.subject, body.delay)
    if not result.ok:
        logger.warning(f"Email job not scheduled: {result.error}")
    return result


@router.post(
    "/jobs/analytics",
    response_model=PublishResult,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Schedule Analytics Job"
)
@limiter.limit(limit_param)
async def schedule_analytics(
    request: Request,
    body: UserJobRequest,
    publisher: JobPublisher = Depends(get_job_publisher)
) -> PublishResult:
    result = await publisher.schedule_analytics_job(body.user_id)
    if not result.ok:
        logger.warning(f"Analytics job not scheduled: {result.error}")
    return result


@router.post(
    "/jobs/subscription-check",
    response_model=PublishResult,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Schedule Subscription Check",
    description="Queue a subscription check; always delivered one day later"
)
@limiter.limit(limit_param)
async def schedule_subscription_check(
    request: Request,
    body: UserJobRequest,
    publisher: JobPublisher = Depends(get_job_publisher)
) -> PublishResult:
    result = await publisher.schedule_subscription_check(body.user_id)
    if not result.ok:
        logger.warning(f"Subscription check not scheduled: {result.error}")
    return result
