"""Backup module initialization."""

from .maintenance import MaintenanceScheduler
from .runner import BackupRunner
from .state import BackupState, StateStore

__all__ = [
    # runner
    "BackupRunner",
    # maintenance
    "MaintenanceScheduler",
    # state
    "BackupState",
    "StateStore",
]
