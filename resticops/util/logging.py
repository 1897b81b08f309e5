"""Utility functions for logging setup."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "resticops"

FILE_FORMAT = logging.Formatter(
    fmt="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    console: Optional[Console] = None
) -> logging.Logger:
    """Set up structured logging with Rich formatting."""

    if console is None:
        console = Console(stderr=True)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FILE_FORMAT)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


def report_issue(
    message: str,
    ignorable: bool = False,
    severity: int = logging.ERROR,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Log a problem, downgrading it to a warning when it may be ignored.

    Warnings only reach the success log of the current attempt; anything at
    ERROR or above lands in the error log and fails the attempt.
    """
    if logger is None:
        logger = get_logger()
    level = logging.WARNING if ignorable else severity
    logger.log(level, message)


class _BelowLevel(logging.Filter):
    """Pass records strictly below a level."""

    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


@dataclass
class RunAttempt:
    """One retry iteration and its pair of log files.

    Used as a context manager: while open, every record logged under the
    ``resticops`` namespace is written to ``success_log`` (below ERROR) or
    ``error_log`` (ERROR and above).
    """

    index: int
    success_log: Path
    error_log: Path
    _handlers: List[logging.Handler] = field(default_factory=list, repr=False)

    @classmethod
    def create(cls, log_dir: Path, run_id: str, index: int) -> "RunAttempt":
        stem = f"{run_id}_attempt{index}"
        return cls(
            index=index,
            success_log=log_dir / f"{stem}.log",
            error_log=log_dir / f"{stem}.err.log",
        )

    def open(self) -> "RunAttempt":
        success_handler = logging.FileHandler(self.success_log, encoding="utf-8")
        success_handler.setLevel(logging.DEBUG)
        success_handler.addFilter(_BelowLevel(logging.ERROR))
        success_handler.setFormatter(FILE_FORMAT)

        # delay=True keeps the error log absent until something fails
        error_handler = logging.FileHandler(self.error_log, encoding="utf-8", delay=True)
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(FILE_FORMAT)

        logger = get_logger()
        for handler in (success_handler, error_handler):
            logger.addHandler(handler)
            self._handlers.append(handler)
        return self

    def close(self) -> None:
        logger = get_logger()
        for handler in self._handlers:
            logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()

    @property
    def succeeded(self) -> bool:
        """An attempt succeeded iff its error log is absent or empty."""
        return not self.error_log.exists() or self.error_log.stat().st_size == 0

    def __enter__(self) -> "RunAttempt":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
