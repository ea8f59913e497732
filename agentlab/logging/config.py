"""
Logging configuration for agentlab.

The CLI shares stdout with machine consumers and stderr with operator-facing
errors, so nothing is logged to the console unless explicitly requested:

- ``--verbose`` (or ``AGENTLAB_DEBUG=1``) attaches a colored stderr handler
- ``AGENTLAB_LOG_FILE`` attaches a rotating file handler
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional, Union

_ROOT_LOGGER = "agentlab"

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s.%(funcName)s:%(lineno)d | %(message)s"

_LOG_COLORS = {
    "DEBUG": "\033[94m",  # Blue
    "INFO": "\033[92m",  # Green
    "WARNING": "\033[93m",  # Yellow
    "ERROR": "\033[91m",  # Red
    "CRITICAL": "\033[91m\033[1m",  # Bold Red
    "RESET": "\033[0m",
}

# Handlers installed by configure_logging, so reconfiguring replaces them.
_HANDLER_MARKER = "_agentlab_handler"


class ColorFormatter(logging.Formatter):
    """Formatter that adds colors to log levels for console output."""

    def __init__(self, fmt: str, use_color: bool = True) -> None:
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record):
        if not self.use_color:
            return super().format(record)
        levelname = record.levelname
        if levelname in _LOG_COLORS:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = (
                f"{_LOG_COLORS[levelname]}{levelname}{_LOG_COLORS['RESET']}"
            )
        return super().format(record)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger below the agentlab hierarchy.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        A logger instance
    """
    return logging.getLogger(name)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


def configure_logging(
    verbose: bool = False,
    log_file: Optional[Union[str, Path]] = None,
    max_file_size_mb: int = 5,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the agentlab logger hierarchy for one CLI invocation.

    Args:
        verbose: Attach a DEBUG-level stderr handler
        log_file: Optional path for a rotating log file; defaults to
            ``AGENTLAB_LOG_FILE`` when set
        max_file_size_mb: Maximum size of the log file before rotation
        backup_count: Number of rotated files to keep

    Returns:
        The configured ``agentlab`` root logger
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    for handler in logger.handlers[:]:
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    verbose = verbose or _env_flag("AGENTLAB_DEBUG")
    if log_file is None:
        log_file = os.environ.get("AGENTLAB_LOG_FILE", "").strip() or None

    logger.setLevel(logging.DEBUG if (verbose or log_file) else logging.WARNING)
    logger.propagate = False

    if verbose:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        use_color = sys.stderr.isatty() and not os.environ.get("NO_COLOR")
        console_handler.setFormatter(ColorFormatter(_CONSOLE_FORMAT, use_color))
        setattr(console_handler, _HANDLER_MARKER, True)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        setattr(file_handler, _HANDLER_MARKER, True)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.debug("agentlab logging initialized (verbose=%s, file=%s)", verbose, log_file)
    return logger
