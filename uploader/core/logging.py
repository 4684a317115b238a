"""Logging configuration module."""

from logging import (
    CRITICAL,
    DEBUG,
    ERROR,
    INFO,
    WARNING,
    Handler,
    Logger,
    StreamHandler,
    getLogger,
)
from typing import cast

import structlog
from structlog import contextvars, dev, processors, stdlib
from structlog.processors import JSONRenderer, TimeStamper, dict_tracebacks
from structlog.stdlib import BoundLogger

# Define log levels
LOG_LEVELS: dict[str, int] = {
    "debug": DEBUG,
    "info": INFO,
    "warning": WARNING,
    "error": ERROR,
    "critical": CRITICAL,
}


def configure_logging(
    level: str = "INFO", json_logs: bool = True, testing: bool = False
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level name
        json_logs: Render log lines as JSON instead of console output
        testing: Whether the application is running in test mode
    """
    log_level = LOG_LEVELS.get(level.lower(), INFO)

    # Configure root logger
    root_logger: Logger = getLogger()
    root_logger.setLevel(log_level)

    # Create and configure app logger
    app_logger: Logger = getLogger("uploader")
    app_logger.setLevel(log_level)
    app_logger.propagate = False

    # Create handler
    handler: Handler = StreamHandler()
    handler.setLevel(log_level)

    # Define shared processors
    shared_processors = [
        contextvars.merge_contextvars,
        stdlib.add_logger_name,
        stdlib.add_log_level,
        stdlib.PositionalArgumentsFormatter(),
        TimeStamper(fmt="%Y-%m-%d %H:%M:%S.%f"),
        dict_tracebacks,
    ]

    if testing:
        renderer = processors.KeyValueRenderer()
    elif json_logs:
        renderer = JSONRenderer()
    else:
        renderer = dev.ConsoleRenderer()

    # Configure structlog
    structlog.configure(
        processors=[
            stdlib.filter_by_level,
            *shared_processors,
            stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=stdlib.LoggerFactory(),
        wrapper_class=stdlib.BoundLogger,
        cache_logger_on_first_use=not testing,
    )

    # Configure handler formatter
    formatter = stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )
    handler.setFormatter(formatter)

    # Clear existing handlers to prevent duplicates
    root_logger.handlers = []
    app_logger.handlers = []

    root_logger.addHandler(handler)
    app_logger.addHandler(handler)


def get_logger(name: str | None = None) -> BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Optional logger name, usually the calling module's ``__name__``

    Returns:
        A structured logger instance.
    """
    if name is None:
        return cast(BoundLogger, structlog.get_logger())
    return cast(BoundLogger, structlog.get_logger(name))


def get_job_logger(job_id: str, stage: str | None = None) -> BoundLogger:
    """Get a logger bound to a download job.

    Args:
        job_id: Job identifier to bind to logger
        stage: Optional pipeline stage to bind to logger

    Returns:
        Configured logger with job context
    """
    logger: BoundLogger = get_logger("uploader.downloads").bind(job_id=job_id)
    if stage:
        logger = logger.bind(stage=stage)
    return logger
