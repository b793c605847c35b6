"""
Logging configuration using structlog.

Production deployments log JSON lines; ``console`` output is meant for a
developer terminal.
"""

from typing import Any

import structlog

from repo_custodian.enums import LogFormat


def configure_logging(log_level: str = "INFO", log_format: LogFormat | str = LogFormat.JSON) -> None:
    """Configure structured logging.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: ``json`` or ``console``
    """
    if LogFormat(str(log_format)) is LogFormat.CONSOLE:
        renderer: Any = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level.upper()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
