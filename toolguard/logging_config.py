"""Logging helpers for the permission engine.

Every module logs through ``logging.getLogger(__name__)`` under the
``toolguard`` namespace and never configures handlers on import. Hosts
with their own logging setup need nothing from here; standalone scripts
can call ``setup_logging()`` once to see decisions on the console.
"""

import logging
import os
import sys
import time
from contextlib import contextmanager
from typing import Generator, Optional, TextIO

PACKAGE_LOGGER = "toolguard"

SIMPLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
)

# Package-specific variable first, then the generic one
LOG_LEVEL_ENVS = ("TOOLGUARD_LOG_LEVEL", "LOG_LEVEL")
DEFAULT_LOG_LEVEL = "INFO"

_handler: Optional[logging.Handler] = None


def _resolve_level(level: Optional[str]) -> int:
    name = level
    for env in LOG_LEVEL_ENVS:
        if name:
            break
        name = os.environ.get(env)
    resolved = logging.getLevelName((name or DEFAULT_LOG_LEVEL).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> logging.Logger:
    """Send toolguard log records to a stream.

    Only the ``toolguard`` logger is configured, so the root logger and other
    libraries are left alone. Calling it again replaces the handler installed
    by the previous call.

    Args:
        level: Level name. Defaults to TOOLGUARD_LOG_LEVEL, then LOG_LEVEL, then INFO.
        stream: Output stream (default: stderr).

    Returns:
        The configured ``toolguard`` logger.
    """
    global _handler

    log_level = _resolve_level(level)
    # Line numbers only help when debugging
    fmt = DETAILED_FORMAT if log_level <= logging.DEBUG else SIMPLE_FORMAT

    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(_handler)
    logger.setLevel(log_level)
    logger.propagate = False
    return logger


@contextmanager
def log_timing(
    logger: logging.Logger, operation: str, level: int = logging.DEBUG
) -> Generator[None, None, None]:
    """Log how long the wrapped block took.

    Args:
        logger: Logger to report to.
        operation: Label used in the message.
        level: Level of the timing message (default: DEBUG).
    """
    if not logger.isEnabledFor(level):
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        logger.log(level, "%s completed in %.1fms", operation, (time.perf_counter() - start) * 1000)
