"""Logging configuration setup.

Records go through a QueueHandler on the root logger; a QueueListener thread
owns the real console and file handlers so that delivery code running on the
event loop never blocks on log I/O.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING, Any

from .formatters import JSONFormatter

if TYPE_CHECKING:
    from crane_crm.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)

_listener: QueueListener | None = None
_LOGGING_INITIALIZED = False

_TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def shutdown() -> None:
    """Drain the queue and stop the listener thread.

    Registered with atexit and also called from the application lifespan.
    """
    global _listener

    if _listener is not None:
        _listener.stop()
        _listener = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **overrides: Any,
) -> None:
    """Configure logging once per process.

    Args:
        log_settings: Settings to use; loaded with get_logging_settings() if omitted.
        force: Reconfigure even if logging was already set up.
        **overrides: Values that replace the settings-derived kwargs.
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    if log_settings is None:
        from crane_crm.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(**{**log_settings.to_logging_kwargs(), **overrides})
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    *,
    json_logs: bool = True,
    file_path: str | Path | None = None,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    include_context: bool = True,
    include_uvicorn: bool = True,
    service_name: str = "crane-crm",
) -> None:
    """Apply a dictConfig for levels and filters, then start the queue listener.

    Example:
        configure_logging("DEBUG", json_logs=False)
    """
    global _listener

    filters: dict[str, Any] = {}
    if include_context:
        filters["context"] = {"()": "crane_crm.infra.logging.context.ContextInjectingFilter"}

    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": filters,
        "root": {"level": log_level.upper(), "handlers": [], "filters": list(filters)},
    }
    if include_uvicorn:
        logging_config["loggers"] = {
            name: {"handlers": [], "propagate": True} for name in _UVICORN_LOGGERS
        }

    shutdown()
    logging.config.dictConfig(logging_config)
    logging.captureWarnings(True)

    if json_logs:
        formatter: logging.Formatter = JSONFormatter(static={"service": service_name})
    else:
        formatter = logging.Formatter(fmt=_TEXT_FORMAT, datefmt=_DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    queue: Queue[logging.LogRecord] = Queue()
    _listener = QueueListener(queue, *handlers, respect_handler_level=True)
    _listener.start()
    atexit.register(shutdown)

    logging.getLogger().addHandler(QueueHandler(queue))
    logger.debug(
        "Logging configured",
        extra={"level": log_level, "json": json_logs, "file": str(file_path) if file_path else None},
    )
