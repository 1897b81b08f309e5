"""Network module initialization."""

from .connectivity import (
    ConnectivityError,
    ConnectivityGate,
    has_active_interface,
    is_local_repository,
    ping_host,
    repository_host,
)

__all__ = [
    "ConnectivityError",
    "ConnectivityGate",
    "has_active_interface",
    "is_local_repository",
    "ping_host",
    "repository_host",
]
