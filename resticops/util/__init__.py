"""Utility module initialization."""

from .logging import RunAttempt, get_logger, report_issue, setup_logging
from .paths import (
    ensure_directory,
    read_text,
    remove_old_files,
    tail_lines,
)
from .system import is_elevated
from .timeutil import (
    days_since,
    format_duration,
    generate_run_id,
    now_utc,
)

__all__ = [
    # logging
    "RunAttempt",
    "get_logger",
    "report_issue",
    "setup_logging",
    # paths
    "ensure_directory",
    "read_text",
    "remove_old_files",
    "tail_lines",
    # system
    "is_elevated",
    # timeutil
    "days_since",
    "format_duration",
    "generate_run_id",
    "now_utc",
]
