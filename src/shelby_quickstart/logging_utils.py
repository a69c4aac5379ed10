"""Logging setup shared by the command-line entry points."""
import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def configure_logging(level: Union[str, int] = "INFO", log_file: Optional[str] = None,
                      console: Optional[Console] = None) -> logging.Logger:
    """Attach a rich console handler (and optionally a file handler) to the package logger.

    :param level: Console log level.
    :param log_file: When given, everything from DEBUG up is also appended to this file.
    :param console: Console to render to; defaults to stderr.
    :return: The package logger.
    """
    logger = logging.getLogger("shelby_quickstart")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    handler = RichHandler(console=console or Console(stderr=True), show_path=False, markup=False)
    handler.setLevel(level if isinstance(level, int) else level.upper())
    handler.setFormatter(logging.Formatter("%(message)s", datefmt=DATE_FORMAT))
    logger.addHandler(handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(fh)
    return logger
