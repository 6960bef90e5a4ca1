# core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    """
    Centralized application configuration.
    Grouped logically for readability; every integration is optional so the
    portal still boots in local development without SaaS credentials.
    """

    # ------------------------------------------------------------
    # Project / Runtime
    # ------------------------------------------------------------
    PROJECT_NAME: str = "Ethereal Presence Portal API"
    DEBUG: bool = True
    ENVIRONMENT: str = Field(
        default="development",
        description="Deployment environment; 'production' enables fail-closed webhook checks",
    )
    LOG_LEVEL: Optional[str] = Field(
        default=None,
        description="Explicit log level (e.g. INFO); defaults to DEBUG when DEBUG is on",
    )
    ENABLE_CORS: bool = True

    # HTTP / API
    FRONTEND_ENDPOINT: str = ""
    BACKEND_ENDPOINT: str = ""
    RATE_LIMIT_MIN: str = "10"

    # ------------------------------------------------------------
    # Messaging (QStash)
    # ------------------------------------------------------------
    QSTASH_URL: str = "https://qstash.upstash.io"
    QSTASH_TOKEN: Optional[str] = Field(
        default=None,
        description="Server-only publish token; publishing is disabled when unset",
    )
    QSTASH_BASE_URL: str = Field(
        default="http://localhost:3000",
        description="Public base URL QStash calls back into (webhook routes live under /api/queue)",
    )
    QSTASH_TIMEOUT_SECS: float = 5.0

    # ------------------------------------------------------------
    # Security (QStash webhook signatures)
    # ------------------------------------------------------------
    QSTASH_CURRENT_SIGNING_KEY: Optional[str] = None
    QSTASH_NEXT_SIGNING_KEY: Optional[str] = None
    QSTASH_CLOCK_TOLERANCE_SECS: int = Field(
        default=0,
        description="Leeway applied to the exp/nbf claims of the signature",
    )

    # ------------------------------------------------------------
    # Email (Resend)
    # ------------------------------------------------------------
    RESEND_API_KEY: Optional[str] = None
    RESEND_API_URL: str = "https://api.resend.com"
    RESEND_TIMEOUT_SECS: float = 10.0
    EMAIL_FROM_ADDRESS: str = "noreply@ethereal-presence.com"

    @property
    def IS_PRODUCTION(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
