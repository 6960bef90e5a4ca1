from contextlib import asynccontextmanager

from fastapi import FastAPI

from presence.core.env_validation import validate_environment
from presence.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Reports configuration problems on startup and closes outbound HTTP
    clients on shutdown. Clients themselves are built in create_app so the
    app state is complete even when the lifespan is not run.
    """
    report = validate_environment(app.state.settings)
    for err in report.errors:
        logger.error(f"Environment validation: {err}")
    for warn in report.warnings:
        logger.warning(f"Environment validation: {warn}")

    logger.info(
        f"Lifespan startup: environment={app.state.settings.ENVIRONMENT} "
        f"queue={'on' if app.state.job_publisher.configured else 'off'} "
        f"verification={'on' if app.state.webhook_verifier.enabled else 'off'}"
    )
    yield

    if app.state.qstash_client is not None:
        await app.state.qstash_client.aclose()
    await app.state.email_sender.aclose()
    logger.info("Lifespan shutdown.")
