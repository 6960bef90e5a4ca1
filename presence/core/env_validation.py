# core/env_validation.py
"""
Startup report on integration settings.

Missing optional integrations are warnings (the app degrades gracefully);
production-only rules are errors. The report is logged, not enforced: the
per-request webhook gate is what actually fails closed.
"""

from typing import Callable, List, NamedTuple, Optional

from pydantic import BaseModel

from presence.core.config import Settings


class EnvVarRule(NamedTuple):
    name: str
    description: str
    required_in_production: bool = False
    validator: Optional[Callable[[str], bool]] = None
    production_only_validator: bool = False


ENV_VARS: List[EnvVarRule] = [
    EnvVarRule("QSTASH_TOKEN", "Upstash QStash publish token"),
    EnvVarRule(
        "QSTASH_CURRENT_SIGNING_KEY",
        "QStash webhook signature verification key (webhooks are rejected without it)",
        required_in_production=True,
    ),
    EnvVarRule("QSTASH_NEXT_SIGNING_KEY", "QStash next rotation signing key"),
    EnvVarRule(
        "QSTASH_BASE_URL",
        "Public base URL for QStash callbacks (must be https in production)",
        validator=lambda v: v.startswith("https://"),
        production_only_validator=True,
    ),
    EnvVarRule("RESEND_API_KEY", "Resend API key for transactional emails"),
]


class EnvironmentReport(BaseModel):
    valid: bool
    errors: List[str] = []
    warnings: List[str] = []
    missing: List[str] = []


def validate_environment(settings: Settings) -> EnvironmentReport:
    production = settings.IS_PRODUCTION
    errors: List[str] = []
    warnings: List[str] = []
    missing: List[str] = []

    for rule in ENV_VARS:
        value = getattr(settings, rule.name, None)

        if not value:
            if rule.required_in_production and production:
                errors.append(f"Missing required environment variable: {rule.name} - {rule.description}")
                missing.append(rule.name)
            else:
                warnings.append(f"Optional environment variable not set: {rule.name} - {rule.description}")
            continue

        if rule.validator is None or (rule.production_only_validator and not production):
            continue
        if not rule.validator(value):
            errors.append(f"Invalid value for {rule.name}: {rule.description}")

    return EnvironmentReport(valid=not errors, errors=errors, warnings=warnings, missing=missing)
