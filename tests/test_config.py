"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from resticops.config import (
    EngineConfig,
    ResticOpsConfig,
    SourceConfig,
    default_config_path,
    load_config,
    save_config,
)

SAMPLE = """\
log_level: debug
global_retry_attempts: 2
ignore_missing_sources: true
sources:
  - key: "C:\\\\"
  - key: WD-WCC4N1234567
    subpaths: [Photos, Documents]
engine:
  repository: b2:my-bucket:laptop
  environment:
    RESTIC_PASSWORD_FILE: /etc/restic/password
health:
  url: https://hc-ping.com/abc
"""


class TestLoadConfig:
    """Test reading and writing the YAML file."""

    def test_creates_default_when_missing(self, tmp_path):
        path = tmp_path / "conf" / "config.yaml"

        config = load_config(path)

        assert path.exists()
        assert config.global_retry_attempts == 4
        assert config.maintenance.interval_days == 30
        assert config.maintenance.prune_args == ["--max-unused", "5%"]

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(SAMPLE)

        config = load_config(path)

        assert config.log_level == "DEBUG"
        assert config.global_retry_attempts == 2
        assert config.ignore_missing_sources is True
        assert config.sources[0].key == "C:\\"
        assert config.sources[1].subpaths == ["Photos", "Documents"]
        assert config.engine.environment["RESTIC_PASSWORD_FILE"] == "/etc/restic/password"
        assert config.health.url == "https://hc-ping.com/abc"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(path).sources == []

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "config.yaml"
        config = ResticOpsConfig(sources=[SourceConfig(key="/home")], log_retention_days=10)

        save_config(config, path)

        assert load_config(path) == config

    def test_path_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RESTICOPS_CONFIG", str(tmp_path / "other.yaml"))

        assert default_config_path() == tmp_path / "other.yaml"


class TestValidation:
    """Test rejected configurations."""

    def test_duplicate_sources(self):
        with pytest.raises(ValidationError):
            ResticOpsConfig(sources=[SourceConfig(key="/data"), SourceConfig(key="/data")])

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            ResticOpsConfig(log_level="LOUD")

    def test_retry_attempts_at_least_one(self):
        with pytest.raises(ValidationError):
            ResticOpsConfig(global_retry_attempts=0)

    def test_assignment_is_validated(self):
        config = ResticOpsConfig()

        with pytest.raises(ValidationError):
            config.global_retry_attempts = 0


class TestRepositoryUri:
    """Test where the repository location comes from."""

    def test_explicit(self, monkeypatch):
        monkeypatch.setenv("RESTIC_REPOSITORY", "/from/env")

        assert EngineConfig(repository="s3:host/bucket").repository_uri() == "s3:host/bucket"

    def test_engine_environment(self, monkeypatch):
        monkeypatch.delenv("RESTIC_REPOSITORY", raising=False)
        engine = EngineConfig(environment={"RESTIC_REPOSITORY": "rest:http://nas:8000/"})

        assert engine.repository_uri() == "rest:http://nas:8000/"

    def test_process_environment(self, monkeypatch):
        monkeypatch.setenv("RESTIC_REPOSITORY", "/from/env")

        assert EngineConfig().repository_uri() == "/from/env"

    def test_unset(self, monkeypatch):
        monkeypatch.delenv("RESTIC_REPOSITORY", raising=False)

        assert EngineConfig().repository_uri() is None


class TestInstallDir:
    """Test defaults derived from the installation directory."""

    def test_files_below_install_dir(self, tmp_path):
        config = ResticOpsConfig(install_dir=tmp_path)

        assert config.log_dir == tmp_path / "logs"
        assert config.state_file == tmp_path / "state.json"
        assert config.engine.exclude_files == [
            tmp_path / "global.exclude",
            tmp_path / "local.exclude",
        ]

    def test_explicit_paths_kept(self, tmp_path):
        config = ResticOpsConfig(
            install_dir=tmp_path,
            log_dir=tmp_path / "elsewhere",
            engine=EngineConfig(exclude_files=[tmp_path / "only.exclude"]),
        )

        assert config.log_dir == tmp_path / "elsewhere"
        assert config.state_file == tmp_path / "state.json"
        assert config.engine.exclude_files == [tmp_path / "only.exclude"]

    def test_engine_section_without_excludes(self, tmp_path):
        config = ResticOpsConfig(install_dir=tmp_path, engine=EngineConfig(binary="/opt/restic"))

        assert config.engine.binary == "/opt/restic"
        assert config.engine.exclude_files[0] == tmp_path / "global.exclude"

    def test_install_dir_from_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(f"install_dir: {tmp_path / 'ops'}\nengine:\n  binary: restic\n")

        config = load_config(path)

        assert config.log_dir == tmp_path / "ops" / "logs"
        assert config.engine.exclude_files[1] == tmp_path / "ops" / "local.exclude"
