import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from presence.routers.router import router
from presence.routers.webhooks import webhook_router
from presence.core.config import Settings, settings as default_settings
from presence.core.errors import unhandled_exception_handler
from presence.core.lifespan import lifespan
from presence.core.logger import logger
from presence.core.qstash_auth import WebhookVerifier
from presence.core.rate_limiter import limiter
from presence.integrations.qstash_client import QStashClient
from presence.integrations.resend_client import ResendClient
from presence.services.job_publisher import JobPublisher


def build_services(app: FastAPI, settings: Settings) -> None:
    """
    Construct integration clients once per process and hang them on app.state.
    Nothing is re-read from the environment while serving requests.
    """
    qstash_client = None
    if settings.QSTASH_TOKEN:
        qstash_client = QStashClient(
            settings.QSTASH_TOKEN,
            api_url=settings.QSTASH_URL,
            timeout=settings.QSTASH_TIMEOUT_SECS,
        )
    else:
        logger.warning("QSTASH_TOKEN not set; job publishing disabled")

    app.state.settings = settings
    app.state.qstash_client = qstash_client
    app.state.job_publisher = JobPublisher.from_settings(settings, qstash_client)
    app.state.webhook_verifier = WebhookVerifier.from_settings(settings)
    app.state.email_sender = ResendClient(
        settings.RESEND_API_KEY,
        from_address=settings.EMAIL_FROM_ADDRESS,
        api_url=settings.RESEND_API_URL,
        timeout=settings.RESEND_TIMEOUT_SECS,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    # CORS configuration
    if settings.ENABLE_CORS:
        origins = [o for o in (settings.FRONTEND_ENDPOINT, settings.BACKEND_ENDPOINT) if o]
    else:
        origins = ["*"]

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="""
    Job dispatch and queue webhooks for the Ethereal Presence therapeutic-VR portal.

    ## Job API

    **POST /api/v1/jobs/email** - `email`, `subject`, optional `delay` (30s, 5m, 2h, 1d)
    **POST /api/v1/jobs/analytics** - `userId`
    **POST /api/v1/jobs/subscription-check** - `userId` (delivered one day later)

    Every job endpoint answers with `{ok, id}` or `{ok, error}`.

    ## Queue webhooks

    **POST /api/queue/{job}** - called by QStash; requires a valid `upstash-signature`.
    """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    build_services(app, settings)

    # Configure rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Request/Response logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": int(duration * 1000),
            "client": request.client.host if request.client else "unknown"
        }

        # Only log non-health-check requests
        if not request.url.path.endswith("/health"):
            logger.info(f"Request: {log_data}")

        return response

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(router)
    app.include_router(webhook_router)

    # Root endpoint
    @app.get("/", tags=["Root"])
    async def root():
        return {
            "service": settings.PROJECT_NAME,
            "version": "1.0.0",
            "status": "running",
            "documentation": "/docs"
        }

    return app


app = create_app()
