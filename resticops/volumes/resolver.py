"""Resolution of backup source identifiers to mounted volumes."""

from typing import Callable, List, Optional, Sequence

from .enumerate import VolumeDescriptor, list_volumes
from ..util.logging import get_logger

logger = get_logger(__name__)


class AmbiguousVolumeError(Exception):
    """More than one mounted volume matches a single source identifier."""

    def __init__(self, identifier: str, matches: Sequence[VolumeDescriptor]):
        self.identifier = identifier
        self.matches = list(matches)
        mounts = ", ".join(v.mount_path for v in self.matches)
        super().__init__(
            f"{len(self.matches)} volumes match '{identifier}' ({mounts}); "
            "multi-partition external disks are not supported"
        )


class VolumeResolver:
    """Maps a source identifier to the volumes currently mounted.

    An identifier matches a volume when it equals the trimmed serial number,
    the disk caption or the filesystem label. An empty identifier matches
    every volume. Each call re-reads the live mount state.
    """

    def __init__(self, enumerate_volumes: Callable[[], List[VolumeDescriptor]] = list_volumes):
        self.enumerate_volumes = enumerate_volumes

    @staticmethod
    def matches(identifier: Optional[str], volume: VolumeDescriptor) -> bool:
        if not identifier:
            return True
        return identifier in (volume.serial_number.strip(), volume.caption, volume.label)

    def resolve(self, identifier: Optional[str]) -> List[VolumeDescriptor]:
        """Return every mounted volume matching ``identifier``."""
        found = [v for v in self.enumerate_volumes() if self.matches(identifier, v)]
        logger.debug(f"Identifier '{identifier}' matched {len(found)} volume(s)")
        return found

    def resolve_one(self, identifier: Optional[str]) -> Optional[VolumeDescriptor]:
        """Return the single matching volume, or None when nothing matches.

        Raises:
            AmbiguousVolumeError: If two or more volumes match
        """
        found = self.resolve(identifier)
        if len(found) > 1:
            raise AmbiguousVolumeError(identifier or "", found)
        return found[0] if found else None
