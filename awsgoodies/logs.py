"""
Logging setup.

Modules log through the standard ``logging`` module; this routes those
records into loguru sinks: stderr for warnings (everything in debug mode)
and a rotating log file under ~/.aws-goodies.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = "<yellow>{level}</yellow>: {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


class InterceptHandler(logging.Handler):
    """Intercept standard logging messages toward Loguru sinks."""
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(debug: bool = False, log_file: Path | None = None) -> None:
    """Configure loguru sinks and intercept stdlib logging."""
    logger.remove()

    logger.add(
        sys.stderr,
        level="DEBUG" if debug else "WARNING",
        colorize=True,
        format=CONSOLE_FORMAT,
    )

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            logger.add(
                str(log_file),
                level="DEBUG",
                rotation="1 MB",
                retention=3,
                format=FILE_FORMAT,
            )
        except OSError as e:
            logger.debug("File logging disabled ({}): {}", log_file, e)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    if debug:
        logger.debug("Debug mode enabled")
