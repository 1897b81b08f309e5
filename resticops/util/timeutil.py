"""Utility functions for time operations."""

from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """Get the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def days_since(moment: datetime, now: Optional[datetime] = None) -> float:
    """Fractional days elapsed between ``moment`` and ``now``."""
    if now is None:
        now = now_utc()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (now - moment).total_seconds() / 86400


def format_duration(seconds: float) -> str:
    """Format duration in human readable format."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


def generate_run_id(moment: Optional[datetime] = None) -> str:
    """Generate a run ID based on a timestamp (local time by default)."""
    if moment is None:
        moment = datetime.now()
    return moment.strftime("%Y-%m-%d_%H%M%S")
