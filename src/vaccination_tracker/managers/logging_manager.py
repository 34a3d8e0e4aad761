"""
# Logging Manager

Central place where loggers are created for the Vaccination Tracker package.

Every module obtains its logger through `get_logger()`, optionally with a prefix that
tags each message with the emitting component:

```python
from vaccination_tracker.managers.logging_manager import get_logger

logger = get_logger(prefix="[CalendarCache]")
logger.info(f"Cache hit for {country.value}")
# 2024-06-01 10:00:00 | INFO | vaccination_tracker | [CalendarCache] Cache hit for Russia
```

The package logger is configured lazily on first use with the level from
`settings.LOG_LEVEL` (or `DEBUG` when `settings.DEBUG` is set). Handlers are attached to
the `vaccination_tracker` logger only, so applications embedding the library keep control
of the root logger.
"""

import logging
import sys
from typing import Any, MutableMapping, Optional, Tuple

LOGGER_NAME = "vaccination_tracker"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


class PrefixedLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that prepends a fixed component prefix to every message."""

    def __init__(self, logger: logging.Logger, prefix: str = ""):
        super().__init__(logger, {"prefix": prefix})
        self.prefix = prefix

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        if self.prefix:
            return f"{self.prefix} {msg}", kwargs
        return msg, kwargs


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure the package logger once.

    Args:
        level: Explicit log level name. When omitted the level is read from settings.
    """
    global _configured

    if level is None:
        from vaccination_tracker.config import settings

        level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL

    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)

    _configured = True


def get_logger(name: str = LOGGER_NAME, prefix: str = "") -> PrefixedLoggerAdapter:
    """
    Return a logger for a package component.

    Args:
        name: Logger name; child names such as `vaccination_tracker.cli` are allowed.
        prefix: Optional tag prepended to every message, e.g. `"[VaccineDataLoader]"`.

    Returns:
        PrefixedLoggerAdapter: A logger adapter bound to the package logger hierarchy.
    """
    if not _configured:
        configure_logging()
    return PrefixedLoggerAdapter(logging.getLogger(name), prefix)
