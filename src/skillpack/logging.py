"""Logging setup for skillpack.

Everything logs under the ``skillpack`` logger. Output goes to a log file
when one is configured (``logging.file`` or ``SKILLPACK_LOG``), otherwise
to a rich stderr handler when stderr is a terminal. Nothing is written to
stdout, which carries composed bundles and manifests.

Verbosity (``-v`` on the command line, ``logging.verbose`` in config):
    0 error, 1 warning, 2 info, 3 verbose, 4 trace
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from skillpack.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("skillpack")

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_NAMED_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

_handlers: list[logging.Handler] = []


def resolve_level(config: LoggingConfig | None) -> int:
    """Effective log level for a LoggingConfig.

    ``verbose`` wins over ``level``; out-of-range verbosity clamps to the
    ends of the scale and unknown level names fall back to INFO.
    """
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        position = max(0, min(config.verbose, len(_VERBOSITY_LEVELS) - 1))
        return _VERBOSITY_LEVELS[position]
    if config.level:
        return _NAMED_LEVELS.get(config.level.upper(), logging.INFO)
    return logging.INFO


def _file_handler(path: str) -> logging.Handler:
    handler = logging.FileHandler(os.path.expanduser(path), mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%H:%M:%S"))
    return handler


def _stderr_handler() -> logging.Handler:
    return RichHandler(
        console=Console(stderr=True),
        show_path=False,
        omit_repeated_times=False,
        markup=False,
    )


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Attach handlers to the ``skillpack`` logger.

    Safe to call again: handlers from an earlier call are replaced, so the
    CLI can reconfigure after loading the project config.
    """
    reset_logging()

    level = resolve_level(config)
    logger.setLevel(level)

    handler: logging.Handler | None = None
    log_path = (config.file if config else None) or os.environ.get("SKILLPACK_LOG")
    if log_path:
        try:
            handler = _file_handler(log_path)
        except OSError as e:
            if sys.stderr.isatty():
                print(f"[skillpack] Failed to open log file: {e}", file=sys.stderr)
                handler = _stderr_handler()
    elif sys.stderr.isatty():
        handler = _stderr_handler()

    if handler is not None:
        handler.setLevel(level)
        logger.addHandler(handler)
        _handlers.append(handler)


def reset_logging() -> None:
    """Remove and close the handlers added by :func:`setup_logging`."""
    while _handlers:
        handler = _handlers.pop()
        logger.removeHandler(handler)
        handler.close()


def get_logger(name: str | None = None) -> logging.Logger:
    """The ``skillpack`` logger, or a child such as ``skillpack.engine``."""
    return logger.getChild(name) if name else logger
