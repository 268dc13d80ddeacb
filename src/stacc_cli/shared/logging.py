"""Logging configuration for stacc-cli.

Structured logs go to stderr (or a file) through structlog. Operator-facing
progress lines are printed separately with rich and are not affected by the
log level.
"""

import logging
import sys
from pathlib import Path

import structlog

VERBOSITY_LEVELS = ["warning", "info", "debug"]


def level_for_verbosity(verbosity: int) -> str:
    """Map a -v count to a log level name."""
    index = max(0, min(verbosity, len(VERBOSITY_LEVELS) - 1))
    return VERBOSITY_LEVELS[index]


def configure_logging(
    level: str = "warning",
    log_file: str | Path | None = None,
    json_output: bool = False,
) -> None:
    """Configure logging for the application.

    Called once on startup. Configures both standard logging and structlog.

    Args:
        level: Log level (debug, info, warning, error, critical)
        log_file: Optional path to log file
        json_output: If True, output JSON lines instead of console format
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(str(log_file))
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)

    logging.basicConfig(
        level=log_level,
        handlers=[handler],
        format="%(message)s",
        force=True,
    )

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
