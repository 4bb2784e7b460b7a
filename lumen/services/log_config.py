"""structlog configuration.

The library only emits events; applications (and the CLI) call
:func:`configure_logging` once at startup.
"""

from __future__ import annotations

from typing import Optional, TextIO

import structlog

from lumen.config.settings import LoggingSettings


def configure_logging(settings: LoggingSettings, file: Optional[TextIO] = None) -> None:
    """Install structlog processors and the level filter from *settings*.

    Events are printed to *file*, or to stdout when it is not given.
    """
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer()
            if settings.json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(settings.level),
        logger_factory=structlog.PrintLoggerFactory(file),
    )
