"""
Delay strings for deferred delivery.

Allowed formats: 10s, 5m, 1h, 1d (seconds, minutes, hours, days).
"""

import re

from presence.core.errors import InvalidDelayFormat, InvalidDelayValue
from presence.schemas.queue_models import DelaySpec, DelayUnit

DELAY_PATTERN = re.compile(r"^(\d+)([smhd])$", re.ASCII)


def parse_delay(raw: str) -> DelaySpec:
    """
    Parse a human-readable delay into a DelaySpec.

    Raises:
        InvalidDelayFormat: raw is not <digits><s|m|h|d>
        InvalidDelayValue: magnitude is zero
    """
    match = DELAY_PATTERN.fullmatch(raw) if isinstance(raw, str) else None
    if match is None:
        raise InvalidDelayFormat(
            f"Invalid delay format: {raw!r}. Must match pattern \\d+[smhd] (e.g., 10s, 5m, 1h, 1d)"
        )

    magnitude = int(match.group(1))
    if magnitude == 0:
        raise InvalidDelayValue(f"Invalid delay value: {raw!r}. Delay must be greater than zero")

    return DelaySpec(magnitude=magnitude, unit=DelayUnit(match.group(2)))
