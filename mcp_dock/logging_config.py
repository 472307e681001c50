"""Structured logging setup.

All modules obtain loggers through :func:`get_logger` and log snake_case
event names with keyword fields::

    logger.info("server_started", server_id="brave-search", duration_ms=12.5)

Output goes to stderr (and optionally a file) as JSON lines or as a
human readable console rendering.
"""

import logging
from pathlib import Path
import sys
from typing import Optional

import structlog

_SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
]


def setup_logging(
    level: int | str = logging.INFO,
    json_format: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """Configure structlog on top of the stdlib logging tree.

    Args:
        level: Root log level (int or level name).
        json_format: Render JSON lines when True, console output otherwise.
        log_file: Optional path of an additional log file (always JSON).
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    renderer = structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    # stderr keeps stdout free for the stdio MCP transport
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    root_logger.addHandler(stderr_handler)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
            file_handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    foreign_pre_chain=_SHARED_PROCESSORS,
                    processors=[
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        structlog.processors.format_exc_info,
                        structlog.processors.JSONRenderer(),
                    ],
                )
            )
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.warning("Could not set up file logging: %s", e)

    # uvicorn access logs are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(max(level, logging.WARNING))


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
