from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

LOGGER_NAME = "dirscribe"

_STRUCTLOG_CONFIGURED = False


def _make_handler(filename: str | Path | None) -> logging.Handler:
    if filename:
        return logging.FileHandler(str(filename), encoding="utf-8")
    return logging.StreamHandler(sys.stderr)


def _configure_structlog() -> None:
    global _STRUCTLOG_CONFIGURED  # noqa: PLW0603
    if _STRUCTLOG_CONFIGURED:
        return
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _STRUCTLOG_CONFIGURED = True


def setup_logging(filename: str | Path | None = None) -> structlog.BoundLogger:
    """Set up structured JSON logging for dirscribe.

    Modules bind their logger at import time, so the stdlib handler is what
    decides where records go. Calling this again with a ``filename`` replaces
    the stderr handler with a UTF-8 file handler (``--log-file``).

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.

    Returns:
        The ``dirscribe`` structlog logger.
    """
    first_call = not _STRUCTLOG_CONFIGURED
    if first_call or filename:
        logging.basicConfig(
            level=logging.INFO,
            handlers=[_make_handler(filename)],
            format="%(message)s",
            force=bool(filename),
        )
    _configure_structlog()
    return structlog.get_logger(LOGGER_NAME)


logger = setup_logging()
