"""Structured logging configuration using structlog.

One setup routine serves the API process and the Celery workers.
- Development: Human-readable colored console output
- Production: JSON formatted output for log aggregation

Usage:
    from sermon_audio.core.logging import setup_logging, get_logger

    setup_logging()

    logger = get_logger(__name__)
    logger.info("refresh_result_applied", record_id=12, kind="cleaning")
"""

import logging
import sys
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.types import Processor

from sermon_audio.core.logging_filters import EventFilter, NonEventFilter

NOISY_LOGGERS = [
    "uvicorn.access",
    "uvicorn.error",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "botocore",
    "boto3",
    "s3transfer",
    "urllib3",
    "celery",
    "celery.worker",
    "celery.app.trace",
    "kombu",
]

CELERY_LOGGERS = [
    "celery",
    "celery.worker",
    "celery.task",
    "celery.app.trace",
    "celery.beat",
]


def get_log_level(level_name: str) -> int:
    """Convert log level name to logging constant."""
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else logging.INFO


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "auto",
    is_development: bool = True,
    logs_dir: str | None = None,
    log_to_file: bool = False,
    log_file_max_bytes: int = 10 * 1024 * 1024,
    log_file_backup_count: int = 5,
    for_celery: bool = False,
) -> None:
    """
    Configure structured logging for the service.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format - 'auto' (based on environment), 'console', or 'json'
        is_development: Whether running in development mode
        logs_dir: Directory for log files (if log_to_file is True)
        log_to_file: Whether to also write logs to files
        log_file_max_bytes: Max size of each log file before rotation
        log_file_backup_count: Number of backup files to keep
        for_celery: Route Celery's own loggers through structlog
    """
    level = get_log_level(log_level)

    if log_format == "auto":
        use_json = not is_development
    else:
        use_json = log_format == "json"

    shared_processors = _shared_processors()

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if use_json:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_to_file and logs_dir:
        log_path = Path(logs_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        # Refresh events go to event.log, everything else to backend.log
        for filename, log_filter in (
            ("backend.log", NonEventFilter()),
            ("event.log", EventFilter()),
        ):
            root_logger.addHandler(
                _json_file_handler(
                    log_path / filename,
                    level=level,
                    max_bytes=log_file_max_bytes,
                    backup_count=log_file_backup_count,
                    log_filter=log_filter,
                )
            )

    min_level = max(logging.WARNING, level)
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(min_level)
    logging.getLogger("uvicorn.error").setLevel(logging.ERROR)

    if for_celery:
        for logger_name in CELERY_LOGGERS:
            celery_logger = logging.getLogger(logger_name)
            celery_logger.setLevel(level)
            celery_logger.handlers = []
            celery_logger.propagate = True


def _json_file_handler(
    path: Path,
    level: int,
    max_bytes: int,
    backup_count: int,
    log_filter: logging.Filter,
) -> RotatingFileHandler:
    """Rotating file handler that always writes JSON (for machine parsing)."""
    json_formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=_shared_processors(),
    )
    handler = RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(json_formatter)
    handler.setLevel(level)
    handler.addFilter(log_filter)
    return handler


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Example:
        logger = get_logger(__name__)
        logger.warning("refresh_job_failed", job_id="abc", reason="timeout")
    """
    return structlog.stdlib.get_logger(name)


class LoggingMiddleware:
    """
    ASGI middleware for request logging.

    Binds a correlation ID to every log emitted while handling a request.
    """

    SKIP_PATHS = {"/health"}

    def __init__(self, app: Any) -> None:
        self.app = app
        self.logger = get_logger("http")

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.SKIP_PATHS:
            await self.app(scope, receive, send)
            return

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=str(uuid.uuid4())[:8],
            path=scope.get("path", ""),
            method=scope.get("method", ""),
        )

        status_code = 500

        async def send_wrapper(message: dict) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            log_method = self.logger.info if status_code < 400 else self.logger.warning
            log_method("request_completed", status_code=status_code)
            structlog.contextvars.clear_contextvars()
