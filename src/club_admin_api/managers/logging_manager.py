"""
# Logging Manager

Central entry point for application logging. Every module obtains its logger through
`get_logger()`, optionally with a bracketed prefix that tags the subsystem emitting the record:

```python
from club_admin_api.managers.logging_manager import get_logger

logger = get_logger(prefix="[AuditLog]")
logger.info("Appended %s entry for %s", action, actor_id)
# 2025-01-01 12:00:00 | INFO | club_admin_api | [AuditLog] Appended login entry for 65f...
```

The root application logger is configured once, lazily, with a single console handler and the
level from `settings.LOG_LEVEL`. Prefixes are applied by a `LoggerAdapter` so the usual
`%`-style arguments and `exc_info=True` keep working.

## Module Attributes

Attributes:
    ROOT_LOGGER_NAME (str): Name of the application root logger.
    LOG_FORMAT (str): Format string used by the console handler.
"""

import logging
import sys
from typing import Any, MutableMapping, Tuple

ROOT_LOGGER_NAME: str = "club_admin_api"
LOG_FORMAT: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


class PrefixedLogger(logging.LoggerAdapter):
    """Logger adapter that prepends a fixed prefix such as `[DATABASE]` to every message."""

    def __init__(self, logger: logging.Logger, prefix: str = ""):
        super().__init__(logger, {})
        self.prefix = prefix

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        if self.prefix:
            return f"{self.prefix} {msg}", kwargs
        return msg, kwargs


def _configure_root_logger() -> None:
    global _configured
    if _configured:
        return

    # Imported here so config loading never depends on logging setup
    from club_admin_api.config import settings

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.propagate = False
    _configured = True


def get_logger(name: str = ROOT_LOGGER_NAME, prefix: str = "") -> PrefixedLogger:
    """
    Return a logger for the application, optionally tagged with a prefix.

    Args:
        name: Logger name. Defaults to the application root logger; names outside the
            `club_admin_api` namespace are nested under it.
        prefix: Text prepended to every message, e.g. `"[AuditLog]"`.

    Returns:
        PrefixedLogger: A logger adapter supporting the standard logging API.
    """
    _configure_root_logger()
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return PrefixedLogger(logging.getLogger(name), prefix)
