"""Backup execution across configured sources."""

import os
import typing as t
from pathlib import Path

from ..config import SourceConfig
from ..engine.client import ResticClient
from ..util.logging import get_logger, report_issue
from ..volumes.enumerate import VolumeEnumerationError
from ..volumes.resolver import AmbiguousVolumeError, VolumeResolver

logger = get_logger(__name__)


class BackupRunner:
    """Backs up every configured source with one restic invocation each."""

    def __init__(
        self,
        client: ResticClient,
        resolver: VolumeResolver,
        ignore_missing: bool = False,
        use_fs_snapshot: bool = True,
        extra_args: t.Sequence[str] = (),
    ) -> None:
        """Initialize backup runner.

        Args:
            client: restic client
            resolver: Volume resolver for identifiers that are not paths
            ignore_missing: Downgrade missing sources to warnings
            use_fs_snapshot: Allow filesystem snapshots for local paths
            extra_args: Extra arguments for every backup invocation
        """
        self.client = client
        self.resolver = resolver
        self.ignore_missing = ignore_missing
        self.use_fs_snapshot = use_fs_snapshot
        self.extra_args = list(extra_args)

    def _missing(self, message: str) -> bool:
        """Report a missing source; returns False when it fails the run."""
        report_issue(message, ignorable=self.ignore_missing, logger=logger)
        return self.ignore_missing

    @staticmethod
    def _is_local_path(key: str) -> bool:
        path = Path(key)
        return path.is_absolute() and path.exists()

    def resolve_root(self, key: str) -> t.Tuple[t.Optional[str], bool]:
        """Find the root directory for a source key.

        Returns:
            (root, is_local) where root is None if nothing is mounted

        Raises:
            AmbiguousVolumeError: If the key matches more than one volume
            VolumeEnumerationError: If mounted volumes cannot be listed
        """
        if self._is_local_path(key):
            return key, True

        volume = self.resolver.resolve_one(key)
        if volume is None:
            return None, False

        logger.info(f"Source '{key}' resolved to {volume.display_name}")
        return volume.mount_path, False

    def inclusion_paths(self, root: str, subpaths: t.Sequence[str]) -> t.Tuple[t.List[str], bool]:
        """Build the list of paths to back up below ``root``.

        Returns:
            (paths, ok) where ok is False if a missing subpath fails the run
        """
        if not subpaths:
            return [root], True

        paths = []
        ok = True
        for subpath in subpaths:
            candidate = Path(root) / subpath
            if candidate.exists():
                paths.append(str(candidate))
            else:
                ok = self._missing(f"Backup path {candidate} not found") and ok
        return paths, ok

    def backup_source(self, source: SourceConfig, exclude_files: t.Sequence[Path]) -> bool:
        """Back up a single source.

        Raises:
            AmbiguousVolumeError: If the source matches more than one volume
        """
        try:
            root, is_local = self.resolve_root(source.key)
        except VolumeEnumerationError as e:
            logger.error(f"Cannot resolve backup source '{source.key}': {e}")
            return False

        if root is None:
            return self._missing(f"Backup source '{source.key}' is not mounted")

        paths, ok = self.inclusion_paths(root, source.subpaths)
        if not paths:
            return self._missing(f"Nothing to back up for source '{source.key}'") and ok

        logger.info(f"Starting backup of {source.key}: {', '.join(paths)}")
        backed_up = self.client.backup(
            paths,
            tag=source.key,
            exclude_files=exclude_files,
            use_fs_snapshot=self.use_fs_snapshot and is_local,
            extra_args=self.extra_args,
        )
        return backed_up and ok

    def run_all(self, sources: t.Sequence[SourceConfig], exclude_files: t.Sequence[Path]) -> bool:
        """Back up every source.

        One failing source does not stop the others, except an ambiguous
        volume match which aborts the whole run.

        Returns:
            True iff every source was backed up
        """
        starting_dir = os.getcwd()
        success = True

        try:
            for source in sources:
                if not self.backup_source(source, exclude_files):
                    success = False
        except AmbiguousVolumeError as e:
            logger.error(f"Aborting backup run: {e}")
            success = False
        finally:
            os.chdir(starting_dir)

        if success:
            logger.info("All backup sources completed")
        return success
