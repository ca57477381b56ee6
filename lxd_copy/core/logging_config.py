"""Logging configuration for lxd-copy with console and optional file output."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog


def setup_logging(
    log_dir: Path | str | None = None,
    log_level: str | None = None,
    max_file_size_mb: int = 10,
) -> None:
    """Setup logging: stderr console plus an optional JSON log file.

    Console output goes to stderr so stdout only carries command results.

    Args:
        log_dir: Directory for lxd_copy.log (no file logging when None)
        log_level: Log level (defaults to LOG_LEVEL env var or WARNING)
        max_file_size_mb: Max file size before truncation (no backup files kept)
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "WARNING")

    log_level_num = getattr(logging, log_level.upper(), logging.WARNING)

    # Clear any existing handlers to prevent duplicates
    logging.getLogger().handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level_num)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_num)
    root_logger.addHandler(console_handler)

    file_handler: RotatingFileHandler | None = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / "lxd_copy.log",
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=0,  # Don't keep old files, just truncate
            encoding="utf-8",
        )
        file_handler.setLevel(log_level_num)
        root_logger.addHandler(file_handler)

    from structlog.stdlib import BoundLogger, LoggerFactory, ProcessorFormatter

    renderer = (
        structlog.dev.ConsoleRenderer()
        if sys.stderr.isatty()
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=True,
    )
    console_handler.setFormatter(ProcessorFormatter(processor=renderer))
    if file_handler is not None:
        file_handler.setFormatter(
            ProcessorFormatter(processor=structlog.processors.JSONRenderer())
        )

    logger = structlog.get_logger("lxd_copy")
    logger.debug(
        "Logging system initialized",
        log_dir=str(log_dir) if log_dir is not None else None,
        log_level=log_level,
        max_file_size_mb=max_file_size_mb,
    )


def get_logger() -> Any:
    """Get the top-level lxd_copy logger."""
    return structlog.get_logger("lxd_copy")
