"""Logging configuration for the marketplace domain.

Standard library handlers carry the output; structlog renders it, as JSON in
production and staging and as coloured console lines everywhere else.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog


def get_log_level() -> str:
    """Get log level based on environment."""
    env = (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()

    level_map = {
        "production": "INFO",
        "staging": "INFO",
        "development": "DEBUG",
        "test": "WARNING",
    }

    return os.getenv("LOG_LEVEL", level_map.get(env, "INFO"))


def setup_stdlib_logging(log_dir: str | None = None) -> None:
    """Configure standard library logging.

    File handlers are only attached when a log directory is given, either
    directly or through ``LOG_DIR``.
    """
    log_level = get_log_level()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    log_dir = log_dir or os.getenv("LOG_DIR")
    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=path / "marketplace.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)

        error_handler = logging.handlers.RotatingFileHandler(
            filename=path / "marketplace_error.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)

        root_logger.addHandler(file_handler)
        root_logger.addHandler(error_handler)

    # Suppress noisy library loggers
    logging.getLogger("protean").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def setup_structlog() -> None:
    """Configure structlog for structured logging."""
    env = (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if env in ["production", "staging"]:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: str | None = None) -> None:
    """Configure all logging for the application."""
    setup_stdlib_logging(log_dir)
    setup_structlog()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance."""
    return structlog.get_logger(name)


def add_context(**kwargs: Any) -> None:
    """Add context variables that will be included in all subsequent log messages."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()
