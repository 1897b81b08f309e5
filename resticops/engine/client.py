"""Restic client wrapper for repository operations."""

import os
import subprocess
import typing as t
from dataclasses import dataclass
from pathlib import Path

from ..config import EngineConfig
from ..util.logging import get_logger

logger = get_logger(__name__)


class EngineError(Exception):
    """Restic could not be executed at all."""
    pass


@dataclass
class ProcessResult:
    """Outcome of a single restic invocation."""

    command: t.List[str]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ResticClient:
    """Simple restic client wrapper."""

    def __init__(
        self,
        binary: str = "restic",
        env: t.Optional[t.Dict[str, str]] = None,
        timeout: t.Optional[int] = None,
    ) -> None:
        """Initialize restic client.

        Args:
            binary: Path to restic executable
            env: Extra environment variables (repository, password, credentials)
            timeout: Command timeout in seconds, None for no limit
        """
        self.binary = binary
        self.env = dict(env or {})
        self.timeout = timeout

    @classmethod
    def from_config(cls, engine: EngineConfig) -> "ResticClient":
        """Build a client from the engine section of the configuration."""
        env = dict(engine.environment)
        if engine.repository:
            env["RESTIC_REPOSITORY"] = engine.repository
        return cls(engine.binary, env=env, timeout=engine.timeout)

    def run(self, command: str, args: t.Sequence[str] = ()) -> ProcessResult:
        """Run a restic subcommand and capture both streams.

        A non-zero exit is reported through the result, not raised.

        Raises:
            EngineError: If restic is missing or the call timed out
        """
        cmd = [self.binary] + command.split() + list(args)
        logger.debug(f"Running restic command: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env={**os.environ, **self.env},
            )
        except subprocess.TimeoutExpired as e:
            raise EngineError(f"restic command timed out after {self.timeout}s: {' '.join(cmd)}") from e
        except FileNotFoundError as e:
            raise EngineError(f"restic not found at {self.binary!r}") from e

        return ProcessResult(cmd, result.returncode, result.stdout, result.stderr)

    def invoke(self, command: str, args: t.Sequence[str] = (), action: t.Optional[str] = None) -> bool:
        """Run a subcommand, log its output and return whether it succeeded.

        stdout is logged at INFO. stderr is logged at ERROR when the exit code
        is non-zero and at WARNING otherwise.
        """
        action = action or command
        try:
            result = self.run(command, args)
        except EngineError as e:
            logger.error(f"{action} failed: {e}")
            return False

        for line in result.stdout.splitlines():
            if line.strip():
                logger.info(line)

        if result.ok:
            if result.stderr.strip():
                logger.warning(f"{action} reported: {result.stderr.strip()}")
            return True

        logger.error(
            f"{action} failed with exit code {result.exit_code}: {result.stderr.strip()}"
        )
        return False

    def list_locks(self) -> t.List[str]:
        """Return the IDs of locks currently held in the repository.

        Raises:
            EngineError: If the listing could not be obtained
        """
        result = self.run("list locks")
        if not result.ok:
            raise EngineError(f"listing locks failed: {result.stderr.strip()}")
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def unlock(self) -> bool:
        """Remove stale locks."""
        return self.invoke("unlock")

    def init(self) -> bool:
        """Initialize a new repository."""
        return self.invoke("init")

    def backup(
        self,
        paths: t.Sequence[str],
        tag: str,
        exclude_files: t.Sequence[Path] = (),
        use_fs_snapshot: bool = False,
        extra_args: t.Sequence[str] = (),
    ) -> bool:
        """Back up ``paths`` as one snapshot tagged ``tag``."""
        args = list(paths)
        if use_fs_snapshot:
            args.append("--use-fs-snapshot")
        args += ["--tag", tag]
        args += [f"--exclude-file={f}" for f in exclude_files]
        args += list(extra_args)
        return self.invoke("backup", args, action=f"Backup of {tag}")

    def forget(self, retention_args: t.Sequence[str]) -> bool:
        """Apply the retention policy."""
        return self.invoke("forget", retention_args)

    def prune(self, prune_args: t.Sequence[str]) -> bool:
        """Reclaim space from forgotten snapshots."""
        return self.invoke("prune", prune_args)

    def check(self, read_data: bool = False) -> bool:
        """Verify repository integrity, optionally re-reading all data."""
        args = ["--read-data"] if read_data else []
        return self.invoke("check", args, action="deep check" if read_data else "check")
