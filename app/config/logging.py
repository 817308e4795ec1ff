"""
Structured logging setup.

structlog is layered on top of the standard library so that third-party
loggers (uvicorn, httpx, redis) and our own components share handlers,
levels and rendering.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import structlog

from app.config.settings import Settings

_configured = False


def _shared_processors():
    return [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _file_handlers(log_dir: Path, formatter: logging.Formatter):
    """Rotating application log plus a separate error-only log."""
    log_dir.mkdir(parents=True, exist_ok=True)

    main_handler = logging.handlers.RotatingFileHandler(
        log_dir / "application.log",
        maxBytes=20 * 1024 * 1024,  # 20MB
        backupCount=14
    )
    main_handler.setFormatter(formatter)

    error_handler = logging.handlers.RotatingFileHandler(
        log_dir / "error.log",
        maxBytes=20 * 1024 * 1024,  # 20MB
        backupCount=14
    )
    error_handler.setFormatter(formatter)
    error_handler.setLevel(logging.ERROR)

    return [main_handler, error_handler]


def setup_logging(settings: Optional[Settings] = None, force: bool = False) -> None:
    """Configure stdlib logging and structlog once per process."""
    global _configured
    if _configured and not force:
        return

    if settings is None:
        from app.config.settings import get_settings
        settings = get_settings()

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handlers = [logging.StreamHandler(sys.stdout)]
    handlers[0].setFormatter(formatter)
    if settings.LOG_FILE_PATH:
        handlers.extend(_file_handlers(Path(settings.LOG_FILE_PATH), formatter))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL)

    # httpx logs every request at INFO, which duplicates our redirect hop logs
    logging.getLogger("httpx").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structured logger bound to the given module name."""
    return structlog.get_logger(name)
