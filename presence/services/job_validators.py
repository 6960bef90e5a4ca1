"""
Per-job payload validators.

Each returns a ValidationOutcome instead of raising, so the publisher can
reject bad input before any network call and still honour its result contract.
"""

import re
from typing import Any, Optional

from pydantic import BaseModel

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 254


class ValidationOutcome(BaseModel):
    valid: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationOutcome":
        return cls(valid=True)

    @classmethod
    def invalid(cls, reason: str) -> "ValidationOutcome":
        return cls(valid=False, reason=reason)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_email(email: Any) -> ValidationOutcome:
    if not isinstance(email, str) or not email:
        return ValidationOutcome.invalid("Invalid email address: email is required")
    if len(email) > MAX_EMAIL_LENGTH:
        return ValidationOutcome.invalid(
            f"Invalid email address: must be at most {MAX_EMAIL_LENGTH} characters"
        )
    if not EMAIL_PATTERN.fullmatch(email):
        return ValidationOutcome.invalid("Invalid email address: expected name@domain.tld")
    return ValidationOutcome.ok()


def validate_subject(subject: Any) -> ValidationOutcome:
    if _is_blank(subject):
        return ValidationOutcome.invalid("Subject must be a non-empty string")
    return ValidationOutcome.ok()


def validate_user_id(user_id: Any) -> ValidationOutcome:
    if _is_blank(user_id):
        return ValidationOutcome.invalid("User ID must be a non-empty string")
    return ValidationOutcome.ok()


def validate_email_job(email: Any, subject: Any) -> ValidationOutcome:
    outcome = validate_email(email)
    if not outcome.valid:
        return outcome
    return validate_subject(subject)


def validate_user_job(user_id: Any) -> ValidationOutcome:
    # analytics and subscription-check share the same body schema
    return validate_user_id(user_id)
