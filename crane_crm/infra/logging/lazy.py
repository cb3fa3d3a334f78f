"""Logger adapter for debug messages that are expensive to build."""

from __future__ import annotations

import logging
from typing import Any


class LazyLoggerAdapter(logging.LoggerAdapter):
    """Accepts a callable as the message and calls it only if the level is enabled.

    Example:
        logger = get_lazy_logger(__name__)
        logger.debug(lambda: f"Rendered {len(html)} bytes for template {template.id}")
    """

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        if callable(msg):
            msg = msg()
        super().log(level, msg, *args, **kwargs)

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)


def get_lazy_logger(name: str, **context: Any) -> LazyLoggerAdapter:
    return LazyLoggerAdapter(logging.getLogger(name), context)
