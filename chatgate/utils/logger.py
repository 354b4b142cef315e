"""Root logging setup for the gateway and its CLI."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

# Worker threads are named after their chat scope, so the file log keeps the thread
FILE_FORMAT = "%(asctime)s [%(threadName)s] %(levelname)s %(name)s:%(lineno)d %(message)s"
CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"

# Transport libraries that log every connection at DEBUG
NOISY_LOGGERS = ("urllib3", "requests")


def _file_handler(log_dir: str, name: str, level: int) -> logging.Handler:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    started = datetime.now().strftime("%Y%m%d_%H%M%S")

    handler = logging.FileHandler(directory / f"{name}_{started}.log", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _console_handler(level: int) -> logging.Handler:
    # stderr, so a reply printed to stdout can be piped on its own
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def quiet_loggers(level: int, names: Iterable[str] = NOISY_LOGGERS):
    """Keep third-party loggers at WARNING or above, even in verbose runs."""
    for name in names:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def setup_logger(
    name: str = "chatgate",
    level: int = logging.INFO,
    log_dir: Optional[str] = "logs",
    console: bool = True,
) -> logging.Logger:
    """
    Replace the root handlers with a log file and a stderr console.

    Args:
        name: Returned logger, and the prefix of the log file name
        level: Level of the root logger and both handlers
        log_dir: Where the log file goes; None writes no file
        console: Add the stderr handler

    Returns:
        The logger called ``name``
    """
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if log_dir:
        root.addHandler(_file_handler(log_dir, name, level))
    if console:
        root.addHandler(_console_handler(level))

    quiet_loggers(level)
    return logging.getLogger(name)
