"""Utility functions for path operations."""

import time
from pathlib import Path
from typing import List, Optional

from .logging import get_logger

logger = get_logger(__name__)


def ensure_directory(path: Path) -> Path:
    """Ensure directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def read_text(path: Path) -> str:
    """Read a text file, returning an empty string when it is missing."""
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8", errors="replace")


def tail_lines(text: str, count: int) -> str:
    """Return the last ``count`` lines of ``text``."""
    lines = text.splitlines()
    return "\n".join(lines[-count:])


def remove_old_files(
    directory: Path,
    max_age_days: int,
    pattern: str = "*",
    now: Optional[float] = None,
) -> List[Path]:
    """Delete files in ``directory`` whose mtime is older than ``max_age_days``."""
    if now is None:
        now = time.time()
    cutoff = now - max_age_days * 86400
    removed = []

    for candidate in directory.glob(pattern):
        if not candidate.is_file():
            continue
        try:
            if candidate.stat().st_mtime < cutoff:
                candidate.unlink()
                removed.append(candidate)
        except OSError as e:
            logger.warning(f"Could not remove old log file {candidate}: {e}")

    if removed:
        logger.debug(f"Removed {len(removed)} log files older than {max_age_days} days")
    return removed
