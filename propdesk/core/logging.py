"""
Structured logging setup.

Usage:
    from propdesk.core.logging import configure_logging
    configure_logging(settings.log_level, settings.log_format)

    logger = structlog.get_logger()
    logger.info("Role created", role_id=str(role.id))

Request-scoped values (request_id) are bound through
structlog.contextvars by the request ID middleware and merged into
every event.
"""

import logging

import structlog


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure structlog processors and rendering."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )
