"""
Logging configuration for Render Profiler.

Log records go to stderr through rich so that JSON written to stdout by the
CLI stays machine-readable. The websocket and file-watch libraries log every
frame and filesystem change; they are held at WARNING unless the profiler
itself runs at DEBUG.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "render_profiler"

VERBOSITY_LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.WARNING,
    "verbose": logging.DEBUG,
}

# websocket-client traces CDP frames, watchfiles reports each change batch
LIBRARY_LOGGERS = ("websocket", "watchfiles")


def setup_logging(verbosity: str = "normal", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure logging for a profiling session.

    Args:
        verbosity: One of "quiet", "normal" or "verbose" (ProfilerConfig.verbosity)
        log_file: Optional file path to append logs to; it always records
                  protocol and watcher activity at DEBUG

    Returns:
        Configured logger instance for render_profiler
    """
    level = VERBOSITY_LEVELS.get(verbosity, logging.WARNING)
    debug = level == logging.DEBUG

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=debug,
        markup=False,
        show_time=True,
        show_path=debug,
    )
    handler.setLevel(level)
    handlers: list[logging.Handler] = [handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    root_level = logging.DEBUG if log_file else level
    logging.basicConfig(level=root_level, format="%(message)s", datefmt="[%X]", handlers=handlers, force=True)

    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(root_level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the render_profiler namespace (the root one if ``name`` is None)."""
    if name is None:
        return logging.getLogger(ROOT_LOGGER)

    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)
