from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

import structlog

LOGGER_NAME = "applypatch"

_handler: Optional[logging.Handler] = None


def _to_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = getattr(level, "value", level)
    resolved = logging.getLevelName(str(value).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def configure_logging(
    level: Union[int, str] = logging.WARNING,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Route applypatch logs to a file (when log_file is given) or stderr.
    Calling it again replaces the previously installed handler.
    """
    global _handler

    resolved = _to_level(level)
    std_logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        std_logger.removeHandler(_handler)
        _handler.close()

    if log_file is not None:
        handler: logging.Handler = logging.FileHandler(
            log_file, mode="a", encoding="utf-8", delay=True
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    std_logger.addHandler(handler)
    std_logger.setLevel(resolved)
    std_logger.propagate = False
    _handler = handler
    return std_logger


structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.dev.ConsoleRenderer(colors=False),
    ],
)

logger: structlog.BoundLogger = structlog.get_logger(LOGGER_NAME)
