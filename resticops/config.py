"""Configuration management for resticops."""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from ruamel.yaml import YAML

CONFIG_ENV_VAR = "RESTICOPS_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config/resticops/config.yaml"
DEFAULT_INSTALL_DIR = Path.home() / ".local/share/resticops"


class SourceConfig(BaseModel):
    """A backup source: a volume identifier or path, plus optional subpaths."""

    key: str = Field(description="Volume serial number, disk caption, filesystem label or path")
    subpaths: List[str] = Field(
        default_factory=list,
        description="Paths below the resolved root to back up; empty means the whole root"
    )


class EngineConfig(BaseModel):
    """Configuration for invoking the restic binary."""

    binary: str = Field(default="restic", description="Path to restic binary")
    repository: Optional[str] = Field(
        default=None,
        description="Repository URI; falls back to RESTIC_REPOSITORY"
    )
    environment: Dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for every restic invocation"
    )
    exclude_files: List[Path] = Field(
        default_factory=lambda: [
            DEFAULT_INSTALL_DIR / "global.exclude",
            DEFAULT_INSTALL_DIR / "local.exclude",
        ],
        description="Exclusion files passed to every backup"
    )
    extra_backup_args: List[str] = Field(default_factory=list, description="Extra backup arguments")
    timeout: Optional[int] = Field(default=None, description="Per-invocation timeout in seconds")

    def repository_uri(self) -> Optional[str]:
        """Configured repository, or the one restic itself would read."""
        return self.repository or self.environment.get("RESTIC_REPOSITORY") \
            or os.environ.get("RESTIC_REPOSITORY")


class MaintenanceConfig(BaseModel):
    """Snapshot retention and repository maintenance policy."""

    enabled: bool = Field(default=True, description="Run forget/prune/check on a cadence")
    retention_args: List[str] = Field(
        default=[
            "--keep-daily", "30",
            "--keep-weekly", "52",
            "--keep-monthly", "24",
            "--keep-yearly", "10",
        ],
        description="Arguments for restic forget"
    )
    prune_args: List[str] = Field(
        default=["--max-unused", "5%"],
        description="Arguments for restic prune"
    )
    interval_days: int = Field(default=30, ge=0, description="Days between maintenance passes")
    interval_runs: int = Field(default=7, ge=0, description="Backup runs between maintenance passes")
    deep_check_interval_days: int = Field(
        default=90, ge=0,
        description="Days between full read-data checks"
    )


class HealthConfig(BaseModel):
    """Healthcheck ping configuration."""

    url: Optional[str] = Field(default=None, description="Base ping URL")
    timeout: int = Field(default=10, description="HTTP timeout in seconds")
    tail_lines: int = Field(default=1000, description="Log lines sent on failure")


class ResticOpsConfig(BaseModel):
    """Main configuration for resticops."""

    install_dir: Path = Field(default=DEFAULT_INSTALL_DIR, description="Installation directory")
    log_dir: Path = Field(
        default_factory=lambda: DEFAULT_INSTALL_DIR / "logs",
        description="Directory for per-attempt log files"
    )
    state_file: Path = Field(
        default_factory=lambda: DEFAULT_INSTALL_DIR / "state.json",
        description="Persisted scheduling state"
    )

    sources: List[SourceConfig] = Field(default_factory=list)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    maintenance: MaintenanceConfig = Field(default_factory=MaintenanceConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)

    # Runtime settings
    log_level: str = Field(default="INFO", description="Console logging level")
    log_retention_days: int = Field(default=60, description="Days to keep log files")
    global_retry_attempts: int = Field(default=4, ge=1, description="Attempts per run")
    retry_backoff_minutes: float = Field(default=15, ge=0, description="Wait between attempts")
    internet_test_attempts: int = Field(
        default=10,
        description="Connectivity polls before giving up; 0 disables the check"
    )
    connectivity_wait_seconds: float = Field(default=5, ge=0, description="Wait between polls")
    ignore_missing_sources: bool = Field(
        default=False,
        description="Warn instead of failing when a source is not available"
    )
    require_elevation: bool = Field(default=True, description="Refuse to run without admin rights")
    use_fs_snapshot: bool = Field(
        default_factory=lambda: sys.platform == "win32",
        description="Use filesystem snapshots for local paths"
    )
    unlock_settle_seconds: float = Field(default=5, ge=0)
    maintenance_settle_seconds: float = Field(default=5, ge=0)

    model_config = ConfigDict(validate_assignment=True)

    @model_validator(mode="before")
    @classmethod
    def _install_dir_defaults(cls, data: Any) -> Any:
        """Place log, state and exclusion files below an explicit ``install_dir``."""
        if not isinstance(data, dict) or data.get("install_dir") is None:
            return data

        install_dir = Path(data["install_dir"])
        excludes = [install_dir / "global.exclude", install_dir / "local.exclude"]
        data = dict(data)
        data.setdefault("log_dir", install_dir / "logs")
        data.setdefault("state_file", install_dir / "state.json")

        engine = data.get("engine")
        if engine is None:
            data["engine"] = {"exclude_files": excludes}
        elif isinstance(engine, dict):
            data["engine"] = {"exclude_files": excludes, **engine}
        elif "exclude_files" not in engine.model_fields_set:
            data["engine"] = engine.model_copy(update={"exclude_files": excludes})
        return data

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value

    @model_validator(mode="after")
    def _unique_sources(self) -> "ResticOpsConfig":
        seen = set()
        for source in self.sources:
            if source.key in seen:
                raise ValueError(f"duplicate backup source: {source.key}")
            seen.add(source.key)
        return self


def default_config_path() -> Path:
    """Config path from the environment, or the per-user default."""
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override) if override else DEFAULT_CONFIG_PATH


def load_config(config_path: Optional[Path] = None) -> ResticOpsConfig:
    """Load configuration from file or create default."""

    if config_path is None:
        config_path = default_config_path()

    if config_path.exists():
        yaml = YAML(typ="safe")
        with open(config_path, "r") as f:
            data = yaml.load(f) or {}
        return ResticOpsConfig(**data)
    else:
        config = ResticOpsConfig()
        save_config(config, config_path)
        return config


def save_config(config: ResticOpsConfig, config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""

    if config_path is None:
        config_path = default_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    yaml = YAML()
    yaml.default_flow_style = False

    with open(config_path, "w") as f:
        yaml.dump(config.model_dump(mode="json"), f)
