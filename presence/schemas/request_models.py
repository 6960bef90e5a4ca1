# schemas/request_models.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


# ============================================================================
# JOB SCHEDULING REQUESTS
# ============================================================================
# Fields are plain strings on purpose: content rules live in the job
# validators so callers get a PublishResult instead of a 422.

class EmailJobRequest(BaseModel):
    """Request body for scheduling an email job"""
    email: str = Field(..., description="Recipient address")
    subject: str = Field(..., description="Email subject line")
    delay: Optional[str] = Field(None, description="Optional delivery delay, e.g. 30s, 5m, 2h, 1d")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"email": "user@example.com", "subject": "Your session summary", "delay": "5m"}
        }
    )


class UserJobRequest(BaseModel):
    """Request body for analytics and subscription-check jobs"""
    user_id: str = Field(..., alias="userId", description="Portal user identifier")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"userId": "usr_01HZY3"}},
    )


# ============================================================================
# HEALTH
# ============================================================================

class HealthResponse(BaseModel):
    status: str
    message: str
    environment: str
    queue_status: str = "unknown"
    verification_status: str = "unknown"
    email_status: str = "unknown"
