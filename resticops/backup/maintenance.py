"""Snapshot retention, prune and integrity check scheduling."""

from datetime import datetime
from typing import Optional

from .state import BackupState
from ..config import MaintenanceConfig
from ..engine.client import ResticClient
from ..util.logging import get_logger
from ..util.timeutil import days_since, now_utc

logger = get_logger(__name__)


class MaintenanceScheduler:
    """Runs forget, prune and check when the policy says they are due."""

    def __init__(self, client: ResticClient):
        self.client = client

    @staticmethod
    def is_due(policy: MaintenanceConfig, state: BackupState, now: datetime) -> bool:
        """Maintenance is due unless both the day and run thresholds are still ahead."""
        if state.last_maintenance is None or state.maintenance_counter is None:
            return True
        days = days_since(state.last_maintenance, now)
        return not (days < policy.interval_days and state.maintenance_counter < policy.interval_runs)

    @staticmethod
    def wants_deep_check(policy: MaintenanceConfig, state: BackupState, now: datetime) -> bool:
        if state.last_deep_maintenance is None:
            return False
        return days_since(state.last_deep_maintenance, now) >= policy.deep_check_interval_days

    def run_if_due(
        self,
        policy: MaintenanceConfig,
        state: BackupState,
        now: Optional[datetime] = None,
    ) -> BackupState:
        """Run maintenance if it is due and return the updated state.

        The counter tracks runs since the last successful pass and is bumped
        on every evaluation. ``last_maintenance`` and the counter are reset
        together, and only when forget, prune and check all succeed.
        """
        if not policy.enabled:
            logger.debug("Snapshot maintenance disabled")
            return state

        if now is None:
            now = now_utc()

        due = self.is_due(policy, state, now)
        state = state.model_copy(update={"maintenance_counter": (state.maintenance_counter or 0) + 1})
        if not due:
            logger.info(
                f"Skipping maintenance (run {state.maintenance_counter} of "
                f"{policy.interval_runs}, last pass {state.last_maintenance:%Y-%m-%d})"
            )
            return state

        logger.info("Starting snapshot maintenance")
        succeeded = True

        if not self.client.forget(policy.retention_args):
            logger.error("Snapshot retention (forget) failed")
            succeeded = False

        # forget --prune would only reclaim what that call removed
        if not self.client.prune(policy.prune_args):
            logger.error("Repository prune failed")
            succeeded = False

        deep = self.wants_deep_check(policy, state, now)
        if state.last_deep_maintenance is None:
            state = state.model_copy(update={"last_deep_maintenance": now})
        elif deep:
            logger.info("Running deep integrity check (read-data)")
            state = state.model_copy(update={"last_deep_maintenance": now})

        if not self.client.check(read_data=deep):
            logger.error("Repository integrity check failed")
            succeeded = False

        if succeeded:
            logger.info("Snapshot maintenance completed")
            state = state.model_copy(update={"last_maintenance": now, "maintenance_counter": 0})
        else:
            logger.error("Snapshot maintenance finished with errors")

        return state
