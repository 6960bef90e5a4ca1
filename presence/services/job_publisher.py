"""
Job publisher for deferred work (emails, analytics, subscription checks).

Every public method returns a PublishResult and never raises for bad input,
missing configuration or queue failures. Callers are route handlers that must
always produce an HTTP response, and the rest of the app keeps working when
the queue integration is absent.
"""

from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from presence.core.config import Settings
from presence.core.errors import JobDispatchError, NotConfiguredError, TransportError, ValidationError
from presence.core.logger import logger
from presence.integrations.qstash_client import QStashClient
from presence.schemas.queue_models import ApiTarget, DelaySpec, JobEnvelope, JobType, PublishResult
from presence.services.delay import parse_delay
from presence.services.job_validators import ValidationOutcome, validate_email_job, validate_user_job

# Subscription checks run daily; callers cannot override this.
SUBSCRIPTION_CHECK_DELAY = "1d"

InstrumentationHook = Callable[[str, PublishResult], None]


class JobPublisher:
    def __init__(
        self,
        client: Optional[QStashClient],
        callback_base_url: str,
        instrumentation: Optional[InstrumentationHook] = None,
    ):
        self.client = client
        self.callback_base_url = callback_base_url
        self.instrumentation = instrumentation

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[QStashClient]) -> "JobPublisher":
        return cls(client=client, callback_base_url=settings.QSTASH_BASE_URL)

    @property
    def configured(self) -> bool:
        return self.client is not None

    # ------------------------------------------------------------------
    # Public schedule operations
    # ------------------------------------------------------------------

    async def schedule_email_job(
        self, email: str, subject: str, delay: Optional[str] = None
    ) -> PublishResult:
        return await self._publish(
            JobType.EMAIL,
            validate_email_job(email, subject),
            body_factory=lambda: {"email": email, "subject": subject},
            delay=delay,
        )

    async def schedule_analytics_job(self, user_id: str) -> PublishResult:
        return await self._publish(
            JobType.ANALYTICS,
            validate_user_job(user_id),
            body_factory=lambda: {"userId": user_id},
        )

    async def schedule_subscription_check(self, user_id: str) -> PublishResult:
        return await self._publish(
            JobType.SUBSCRIPTION_CHECK,
            validate_user_job(user_id),
            body_factory=lambda: {"userId": user_id},
            delay=SUBSCRIPTION_CHECK_DELAY,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _publish(
        self,
        job_type: JobType,
        outcome: ValidationOutcome,
        body_factory: Callable[[], Dict[str, Any]],
        delay: Optional[str] = None,
    ) -> PublishResult:
        try:
            message_id = await self._dispatch(job_type, outcome, body_factory, delay)
            result = PublishResult.success(message_id)
        except JobDispatchError as e:
            result = PublishResult.failure(str(e))

        self._instrument(job_type.value, result)
        return result

    async def _dispatch(
        self,
        job_type: JobType,
        outcome: ValidationOutcome,
        body_factory: Callable[[], Dict[str, Any]],
        delay: Optional[str],
    ) -> str:
        if not outcome.valid:
            raise ValidationError(outcome.reason)

        delay_spec: Optional[DelaySpec] = parse_delay(delay) if delay else None

        if self.client is None:
            raise NotConfiguredError(
                "QStash not configured: QSTASH_TOKEN must be set in a server-only environment"
            )

        try:
            envelope = JobEnvelope(
                api=ApiTarget(name=job_type.value, base_url=self.callback_base_url),
                body=body_factory(),
                delay=delay_spec,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid job envelope: {e.error_count()} error(s)")

        try:
            response = await self.client.publish_json(envelope)
        except Exception as e:
            # Payload bodies can carry end-user PII; log routing info only.
            logger.error(
                "QStash publish failed job=%s delay=%s error=%s",
                job_type.value, delay_spec, e,
            )
            raise TransportError(str(e) or type(e).__name__)

        message_id = _extract_message_id(response)
        if not message_id:
            logger.error("QStash publish returned no message id job=%s", job_type.value)
            raise TransportError("QStash response did not include a message id")

        logger.info("QStash publish ok job=%s msg_id=%s delay=%s", job_type.value, message_id, delay_spec)
        return message_id

    def _instrument(self, job_type: str, result: PublishResult) -> None:
        if self.instrumentation is None:
            return
        try:
            self.instrumentation(job_type, result)
        except Exception as e:
            # Non-fatal; tracing must never change the publish outcome
            logger.warning(f"Publish instrumentation failed for job={job_type}: {e}")


def _extract_message_id(response: Any) -> Optional[str]:
    if isinstance(response, str):
        return response
    if isinstance(response, Mapping):
        message_id = response.get("messageId") or response.get("id")
        return str(message_id) if message_id else None
    return None
