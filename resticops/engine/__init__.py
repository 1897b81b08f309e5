"""Restic engine module initialization."""

from .client import EngineError, ProcessResult, ResticClient

__all__ = [
    "EngineError",
    "ProcessResult",
    "ResticClient",
]
