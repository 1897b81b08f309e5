"""Volume module initialization."""

from .enumerate import (
    VolumeDescriptor,
    VolumeEnumerationError,
    list_volumes,
    parse_lsblk,
)
from .resolver import AmbiguousVolumeError, VolumeResolver

__all__ = [
    # enumerate
    "VolumeDescriptor",
    "VolumeEnumerationError",
    "list_volumes",
    "parse_lsblk",
    # resolver
    "AmbiguousVolumeError",
    "VolumeResolver",
]
