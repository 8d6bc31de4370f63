"""Structured logging configuration.

Every module obtains its logger through ``get_logger`` so events share one
structlog processor chain (ISO timestamp, level, JSON line). An application
that configures structlog itself keeps its own configuration.
"""

from __future__ import annotations

from typing import Any

import structlog


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to ``name``.

    Args:
        name: Logger name, usually __name__.
    """
    if not structlog.is_configured():
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.JSONRenderer(),
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
    return structlog.get_logger(name)
