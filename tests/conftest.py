"""Shared fixtures for resticops tests."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pytest

from resticops.config import EngineConfig, MaintenanceConfig, ResticOpsConfig, SourceConfig
from resticops.engine.client import ProcessResult, ResticClient
from resticops.volumes.enumerate import VolumeDescriptor
from resticops.volumes.resolver import VolumeResolver


class FakeEngine(ResticClient):
    """restic stand-in that records every invocation.

    ``results`` maps a subcommand to an exit code, or to a list of exit codes
    consumed one call at a time (the last one repeats).
    """

    def __init__(self, results: Optional[Dict[str, Union[int, List[int]]]] = None, locks: Sequence[str] = ()):
        super().__init__("restic")
        self.results = dict(results or {})
        self.locks = list(locks)
        self.calls = []

    def run(self, command: str, args: Sequence[str] = ()) -> ProcessResult:
        self.calls.append((command, list(args)))
        cmd = [self.binary] + command.split() + list(args)

        if command == "list locks":
            return ProcessResult(cmd, 0, "\n".join(self.locks), "")

        outcome = self.results.get(command, 0)
        if isinstance(outcome, list):
            exit_code = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        else:
            exit_code = outcome
        stderr = f"Fatal: {command} went wrong" if exit_code else ""
        return ProcessResult(cmd, exit_code, f"{command} output", stderr)

    def commands(self) -> List[str]:
        return [command for command, _ in self.calls]

    def args_for(self, command: str) -> List[List[str]]:
        return [args for name, args in self.calls if name == command]


class StaticResolver(VolumeResolver):
    """Volume resolver over a fixed list of volumes that records its queries."""

    def __init__(self, volumes: Sequence[VolumeDescriptor] = ()):
        self.volumes = list(volumes)
        self.queries = []
        super().__init__(lambda: self.volumes)

    def resolve(self, identifier):
        self.queries.append(identifier)
        return super().resolve(identifier)


@pytest.fixture(autouse=True)
def package_log_level():
    """Let INFO records reach per-attempt log files."""
    logger = logging.getLogger("resticops")
    previous = logger.level
    logger.setLevel(logging.DEBUG)
    yield
    logger.setLevel(previous)


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path: Path, source_dir: Path) -> ResticOpsConfig:
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    return ResticOpsConfig(
        install_dir=tmp_path,
        log_dir=log_dir,
        state_file=tmp_path / "state.json",
        sources=[SourceConfig(key=str(source_dir))],
        engine=EngineConfig(
            repository="sftp:backup@nas.example.com:/srv/restic",
            exclude_files=[tmp_path / "global.exclude", tmp_path / "local.exclude"],
        ),
        maintenance=MaintenanceConfig(),
        global_retry_attempts=3,
        use_fs_snapshot=True,
    )
