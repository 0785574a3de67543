"""Central logging helpers"""
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Union
import structlog
import structlog.stdlib

from avdtp_harness.config import settings
from avdtp_harness.exceptions import ConfigurationError

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _build_file_handler(component: str) -> RotatingFileHandler:
    log_dir: Path = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"{component}.log"
    handler = RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=5)
    handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
    return handler


def _resolve_level(level: Optional[Union[int, str]]) -> int:
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ConfigurationError(f"Unknown log level: {level}", details={"log_level": level})
        return resolved
    return level


def setup_logging(component: str = "harness", level: Optional[Union[int, str]] = None) -> None:
    """Configure structlog + stdlib logging for a component"""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if settings.log_to_file:
        handlers.append(_build_file_handler(component))

    logging.basicConfig(
        level=_resolve_level(level), handlers=handlers, format=_DEFAULT_FORMAT, force=True
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger(__name__).info("logging_initialized", extra={"component": component})
