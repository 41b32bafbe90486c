from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

logger = logging.getLogger("surfex")
logger.setLevel(logging.INFO)
logger.propagate = False


def setup_logging(verbose: bool = False, log_file: Optional[str] = "surfex.log", silent: bool = False) -> logging.Logger:
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if log_file:
        handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s: %(message)s"))
        logger.addHandler(handler)

    if not silent:
        rich_handler = RichHandler(console=console, show_path=False, markup=False, rich_tracebacks=True)
        rich_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(rich_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger
