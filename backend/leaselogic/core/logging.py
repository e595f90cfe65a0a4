"""
structlog configuration shared by the API, the job runner and Celery workers.

Usage:
    from leaselogic.core.logging import get_logger, setup_logging

    setup_logging("INFO")     # call once at startup
    logger = get_logger(__name__)
    logger.info("Phase completed", job_id=job_id, phase="Parsing")
"""

from __future__ import annotations

import logging
import sys

import structlog

from leaselogic.core.config import settings


def setup_logging(level: str | None = None, *, json_logs: bool | None = None) -> None:
    """
    Configure stdlib logging and structlog.

    Development renders coloured key/value lines; every other
    environment emits one JSON object per line.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    if json_logs is None:
        json_logs = settings.APP_ENV != "development"

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to `name`."""
    return structlog.get_logger(name)
