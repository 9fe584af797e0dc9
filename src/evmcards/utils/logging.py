"""
Logging for evmcards.

Everything logs under the ``evmcards`` logger hierarchy. Log output goes to
stderr so it never interleaves with JSON printed on stdout. Most of the work
happens on poller and task threads, so debug output carries the thread name
(``evmcards-poll-3``, ``evmcards-trace``...).
"""

import logging
import os
import sys
from typing import Optional

from evmcards.utils.colors import Colors

# Below DEBUG: one line per receipt poll
TRACE = 5
logging.addLevelName(TRACE, 'TRACE')

ROOT_LOGGER = 'evmcards'

CONSOLE_FORMAT = '%(levelname)s: %(message)s'
THREADED_FORMAT = '%(levelname)s [%(threadName)s] %(name)s: %(message)s'
FILE_FORMAT = '%(asctime)s %(threadName)s %(name)s %(levelname)s %(message)s'


class ColoredFormatter(logging.Formatter):
    """Colors the level name by severity."""

    LEVEL_COLORS = {
        TRACE: Colors.DIM,
        logging.DEBUG: Colors.DIM,
        logging.INFO: Colors.BRIGHT_CYAN,
        logging.WARNING: Colors.BRIGHT_YELLOW,
        logging.ERROR: Colors.BRIGHT_RED,
        logging.CRITICAL: Colors.BOLD + Colors.BRIGHT_RED,
    }

    def __init__(self, fmt: str = CONSOLE_FORMAT, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)
        # Copy so other handlers see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{Colors.RESET}"
        return super().format(colored)


def _stderr_supports_color() -> bool:
    return (
        hasattr(sys.stderr, 'isatty')
        and sys.stderr.isatty()
        and 'NO_COLOR' not in os.environ
    )


def resolve_level(level: int = logging.WARNING, debug: bool = False, verbose: bool = False) -> int:
    """--verbose wins over --debug, which wins over the base level."""
    if verbose:
        return TRACE
    if debug:
        return logging.DEBUG
    return level


def setup_logging(
    level: int = logging.WARNING,
    quiet: bool = False,
    debug: bool = False,
    verbose: bool = False,
    log_file: Optional[str] = None,
    use_colors: bool = True
) -> logging.Logger:
    """
    Configure the ``evmcards`` logger. Safe to call more than once.

    Args:
        level: Console level when neither debug nor verbose is set
        quiet: No console output at all (the log file still gets everything)
        debug: Console level DEBUG, with thread names
        verbose: Console level TRACE, including every receipt poll
        log_file: Also append DEBUG-and-above records to this file
        use_colors: Color level names when stderr is a terminal

    Returns:
        The ``evmcards`` logger
    """
    console_level = resolve_level(level, debug, verbose)
    file_level = min(console_level, logging.DEBUG)

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    if quiet:
        # Keeps logging's last-resort stderr handler out of the way
        logger.addHandler(logging.NullHandler())
    else:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(console_level)
        fmt = THREADED_FORMAT if console_level < logging.INFO else CONSOLE_FORMAT
        console.setFormatter(ColoredFormatter(fmt, use_colors=use_colors and _stderr_supports_color()))
        logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)

    if log_file:
        logger.setLevel(file_level)
    else:
        logger.setLevel(logging.CRITICAL if quiet else console_level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """``get_logger("tracker")`` is ``evmcards.tracker``; no name gives the root logger."""
    if name:
        return logging.getLogger(f'{ROOT_LOGGER}.{name}')
    return logging.getLogger(ROOT_LOGGER)


logger = get_logger()
