# schemas/queue_models.py
import json
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator, model_validator

# Webhook routes QStash calls back into: {QSTASH_BASE_URL}/api/queue/{job type}
WEBHOOK_PATH_PREFIX = "/api/queue"


class JobType(str, Enum):
    """Routing keys for queued jobs"""
    EMAIL = "email"
    ANALYTICS = "analytics"
    SUBSCRIPTION_CHECK = "subscription-check"


class DelayUnit(str, Enum):
    SECOND = "s"
    MINUTE = "m"
    HOUR = "h"
    DAY = "d"


_UNIT_SECONDS = {
    DelayUnit.SECOND: 1,
    DelayUnit.MINUTE: 60,
    DelayUnit.HOUR: 3600,
    DelayUnit.DAY: 86400,
}


class DelaySpec(BaseModel):
    """Normalized delivery delay, e.g. 30s or 1d"""
    model_config = ConfigDict(frozen=True)

    magnitude: PositiveInt
    unit: DelayUnit

    @property
    def total_seconds(self) -> int:
        return self.magnitude * _UNIT_SECONDS[self.unit]

    def __str__(self) -> str:
        return f"{self.magnitude}{self.unit.value}"


class ApiTarget(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1, description="Job type used to route the callback")
    base_url: str = Field(..., alias="baseUrl", description="Base URL QStash posts back to")


class JobEnvelope(BaseModel):
    """
    Unit submitted to the queue. Built fresh per schedule call and never
    persisted here; the queue owns it once accepted.
    """
    model_config = ConfigDict(frozen=True)

    api: ApiTarget
    body: Dict[str, Any] = {}
    delay: Optional[DelaySpec] = None

    @field_validator("body")
    @classmethod
    def body_must_be_json(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        try:
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"job body must serialize to JSON: {e}")
        return value

    @property
    def destination_url(self) -> str:
        return f"{self.api.base_url.rstrip('/')}{WEBHOOK_PATH_PREFIX}/{self.api.name}"

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {
            "api": {"name": self.api.name, "baseUrl": self.api.base_url},
            "body": self.body,
        }
        if self.delay is not None:
            wire["delay"] = str(self.delay)
        return wire


class PublishResult(BaseModel):
    """
    Uniform outcome of a schedule attempt.
    Exactly one of `id` / `error` is set, keyed by `ok`.
    """
    ok: bool
    id: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def check_exactly_one(self) -> "PublishResult":
        if self.ok and (self.id is None or self.error is not None):
            raise ValueError("successful PublishResult requires id and no error")
        if not self.ok and (self.error is None or self.id is not None):
            raise ValueError("failed PublishResult requires error and no id")
        return self

    @classmethod
    def success(cls, message_id: str) -> "PublishResult":
        return cls(ok=True, id=message_id)

    @classmethod
    def failure(cls, error: str) -> "PublishResult":
        return cls(ok=False, error=error)


class WebhookMetadata(BaseModel):
    """
    Queue-assigned delivery headers. Readable on unauthenticated requests,
    so never proof of authenticity on its own.
    """
    message_id: Optional[str] = None
    retry_count: int = 0
    schedule_id: Optional[str] = None
    not_before: Optional[int] = None


# ============================================================================
# WEBHOOK PAYLOADS (bodies QStash delivers back)
# ============================================================================

class EmailJobPayload(BaseModel):
    email: str
    subject: str


class UserJobPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
