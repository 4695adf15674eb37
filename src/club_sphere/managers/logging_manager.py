"""
Logging Manager.

Central place to obtain loggers. Every component asks for a logger with a bracketed
prefix so log lines can be traced back to their subsystem:

```python
from club_sphere.managers.logging_manager import get_logger

logger = get_logger(prefix="[CHECKOUT]")
logger.info(f"Created payment link {link_id}")
# 2026-01-01 12:00:00,000 INFO club_sphere [CHECKOUT] Created payment link plink_123
```
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "club_sphere"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_configured = False


class PrefixAdapter(logging.LoggerAdapter):
    """Prepends a fixed component prefix to every message."""

    def process(self, msg, kwargs):
        prefix = self.extra.get("prefix") if self.extra else None
        if prefix:
            return f"{prefix} {msg}", kwargs
        return msg, kwargs


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install the stream handler on the package root logger.

    Safe to call more than once; the handler is only attached the first time, later
    calls just adjust the level.
    """
    global _configured

    if level is None:
        from club_sphere.config import settings

        level = settings.LOG_LEVEL

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level.upper())

    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.propagate = False
        _configured = True


def get_logger(name: str = ROOT_LOGGER_NAME, prefix: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Return a logger for a component.

    Args:
        name: Logger name, defaults to the package root so all output shares one handler.
        prefix: Optional tag such as `"[DATABASE]"` prepended to every message.
    """
    return PrefixAdapter(logging.getLogger(name), {"prefix": prefix})
