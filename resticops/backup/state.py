"""Persisted cross-run scheduling state."""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from ..util.logging import get_logger
from ..util.paths import ensure_directory

logger = get_logger(__name__)


class BackupState(BaseModel):
    """Scheduling state that survives across invocations.

    Every field is optional so a fresh install starts from an all-unset state.
    """

    repository_initialized: Optional[bool] = Field(default=None, description="restic init has run")
    last_maintenance: Optional[datetime] = Field(
        default=None,
        description="End of the last fully successful maintenance pass"
    )
    last_deep_maintenance: Optional[datetime] = Field(
        default=None,
        description="Last time a read-data check was run"
    )
    maintenance_counter: Optional[int] = Field(
        default=None,
        description="Runs since the last successful maintenance pass"
    )


class StateStore:
    """Loads and saves BackupState at a fixed path."""

    def __init__(self, state_path: Path):
        self.state_path = Path(state_path)

    def load(self) -> BackupState:
        """Load state, defaulting every field when there is no usable record."""
        if not self.state_path.exists():
            logger.debug(f"No state at {self.state_path}, starting fresh")
            return BackupState()

        try:
            with open(self.state_path, "r", encoding="utf-8") as f:
                data = json.load(f) or {}
            state = BackupState(**data)
            logger.debug(f"Loaded state from {self.state_path}")
            return state
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning(f"Ignoring unreadable state file {self.state_path}: {e}")
            return BackupState()

    def save(self, state: BackupState) -> None:
        """Overwrite the state file with ``state``."""
        ensure_directory(self.state_path.parent)
        tmp_path = self.state_path.with_suffix(self.state_path.suffix + ".tmp")

        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(state.model_dump_json(indent=2))
        tmp_path.replace(self.state_path)

        logger.debug(f"Saved state to {self.state_path}")
