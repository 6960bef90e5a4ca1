# core/logger.py
"""
Process-wide `presence-logger`.

Job handlers and the publisher attach QStash message ids through `extra`;
only the message text is formatted to the console, payloads are never logged.
"""
import logging
from presence.core.config import settings

LOGGER_NAME = "presence-logger"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(settings.LOG_LEVEL.upper() if settings.LOG_LEVEL else (logging.DEBUG if settings.DEBUG else logging.INFO))
logger.propagate = False

# create_app may run more than once per process (tests, reload); one console handler only
if not logger.handlers:
    _console = logging.StreamHandler()
    _console.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    logger.addHandler(_console)
