"""
Program settings and logging bootstrap.
"""
import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

PROGRAM_NAME = "dirspot"
VERSION = "1.0.0"
DISPLAY_NAME = f"{PROGRAM_NAME} {VERSION}"
DEFAULT_INTERVAL_MS = 1000


@dataclass(frozen=True)
class ScanSettings:
    target: str = "."
    follow_links: bool = False
    interval_ms: int = DEFAULT_INTERVAL_MS
    log_file: Path | None = None


def setup_logger(log_file=None, console_level=logging.WARNING, file_level=logging.DEBUG):
    """Set up the application logger.

    Console output goes to stderr and stays at WARNING by default so it does
    not interleave with the live report on stdout. Debug output is only
    available through ``log_file``.
    """
    logger = logging.getLogger(PROGRAM_NAME)
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    console_handler = RichHandler(console=Console(stderr=True), show_path=False)
    console_handler.setLevel(console_level)
    logger.addHandler(console_handler)

    if log_file is not None:
        resolved_log_file = Path(log_file).expanduser().resolve()
        os.makedirs(resolved_log_file.parent, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            resolved_log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


logger = setup_logger()
