"""Structured logging setup for blockdoc.

Events are JSON lines named in snake_case (``block_inserted``,
``drop_committed``) with the block ids involved as fields, so a session can
be replayed from the log with ``jq``.
"""

import os
from pathlib import Path
from typing import Any, Optional

import structlog

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_LEVEL_ENV = "BLOCKDOC_LOG_LEVEL"


def default_log_file() -> Path:
    return Path.home() / ".cache" / "blockdoc" / "logs" / "blockdoc.log"


def configure_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> Path:
    """
    Send structlog output to a JSON log file.

    DEBUG covers every engine mutation and drag transition; INFO and above
    keep to document loads and saves, committed drops and degraded blocks.

    Args:
        level: Level name; defaults to $BLOCKDOC_LOG_LEVEL, then INFO.
            Unknown names fall back to INFO.
        log_file: Destination; defaults to ~/.cache/blockdoc/logs/blockdoc.log

    Returns:
        Path of the log file being written
    """
    log_file = log_file or default_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    level = (level or os.environ.get(LOG_LEVEL_ENV, "INFO")).upper()
    if level not in LOG_LEVELS:
        level = "INFO"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=open(log_file, "a")),
        cache_logger_on_first_use=True,
    )
    return log_file


def get_logger(name: str) -> Any:
    """Return the structlog logger for a module (pass ``__name__``)."""
    return structlog.get_logger(name)
