"""Top-level run driver: connectivity, unlock, backup, maintenance and retry.

One run is a small state machine::

    START -> PREFLIGHT -> ABORT
                       -> CHECK_CONNECTIVITY -> UNLOCK -> RUN_BACKUP -> RUN_MAINTENANCE -> EVALUATE
                          (not ready ---------------------------------------------------->)
    EVALUATE -> DONE | SCHEDULE_RETRY -> CHECK_CONNECTIVITY | EXHAUSTED

Every step logs instead of raising; the attempt's error log is the only
success signal EVALUATE looks at.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from .backup.maintenance import MaintenanceScheduler
from .backup.runner import BackupRunner
from .backup.state import BackupState, StateStore
from .config import ResticOpsConfig
from .engine.client import EngineError, ResticClient
from .health import HealthReporter
from .network.connectivity import ConnectivityGate
from .util.logging import RunAttempt, get_logger
from .util.paths import read_text, remove_old_files, tail_lines
from .util.system import is_elevated
from .util.timeutil import format_duration, generate_run_id
from .volumes.resolver import VolumeResolver

logger = get_logger(__name__)


class Phase(Enum):
    START = "start"
    PREFLIGHT = "preflight"
    ABORT = "abort"
    CHECK_CONNECTIVITY = "check_connectivity"
    UNLOCK = "unlock"
    RUN_BACKUP = "run_backup"
    RUN_MAINTENANCE = "run_maintenance"
    EVALUATE = "evaluate"
    SCHEDULE_RETRY = "schedule_retry"
    DONE = "done"
    EXHAUSTED = "exhausted"


TERMINAL_PHASES = {Phase.ABORT, Phase.DONE, Phase.EXHAUSTED}

PREFLIGHT_EXIT_CODE = 1


@dataclass
class RunContext:
    """Mutable bookkeeping threaded through the phases of one run."""

    run_id: str
    attempts_left: int
    state: Optional[BackupState] = None
    failures: int = 0
    attempt_index: int = 0
    attempt: Optional[RunAttempt] = None
    backup_ok: bool = False


class RetryOrchestrator:
    """Drives backup attempts until one succeeds or the attempt budget runs out."""

    def __init__(
        self,
        config: ResticOpsConfig,
        client: ResticClient,
        runner: BackupRunner,
        scheduler: MaintenanceScheduler,
        gate: ConnectivityGate,
        store: StateStore,
        health: HealthReporter,
        sleep: Callable[[float], None] = time.sleep,
        elevated: Callable[[], bool] = is_elevated,
    ):
        self.config = config
        self.client = client
        self.runner = runner
        self.scheduler = scheduler
        self.gate = gate
        self.store = store
        self.health = health
        self.sleep = sleep
        self.elevated = elevated

        self._handlers: Dict[Phase, Callable[[RunContext], Phase]] = {
            Phase.START: self._start,
            Phase.PREFLIGHT: self._preflight,
            Phase.CHECK_CONNECTIVITY: self._check_connectivity,
            Phase.UNLOCK: self._unlock,
            Phase.RUN_BACKUP: self._run_backup,
            Phase.RUN_MAINTENANCE: self._run_maintenance,
            Phase.EVALUATE: self._evaluate,
            Phase.SCHEDULE_RETRY: self._schedule_retry,
        }

    @classmethod
    def from_config(cls, config: ResticOpsConfig) -> "RetryOrchestrator":
        """Wire up the real collaborators for ``config``."""
        client = ResticClient.from_config(config.engine)
        runner = BackupRunner(
            client,
            VolumeResolver(),
            ignore_missing=config.ignore_missing_sources,
            use_fs_snapshot=config.use_fs_snapshot,
            extra_args=config.engine.extra_backup_args,
        )
        return cls(
            config=config,
            client=client,
            runner=runner,
            scheduler=MaintenanceScheduler(client),
            gate=ConnectivityGate(wait_seconds=config.connectivity_wait_seconds),
            store=StateStore(config.state_file),
            health=HealthReporter(config.health.url, timeout=config.health.timeout),
        )

    def run(self) -> int:
        """Execute one complete run.

        Returns:
            Number of failed attempts (0 on first-try success), or 1 if a
            preflight check failed
        """
        started = time.monotonic()
        ctx = RunContext(run_id=generate_run_id(), attempts_left=self.config.global_retry_attempts)
        phase = Phase.START

        try:
            while phase not in TERMINAL_PHASES:
                logger.debug(f"Entering phase {phase.value}")
                phase = self._handlers[phase](ctx)
        finally:
            if ctx.attempt is not None:
                ctx.attempt.close()
            # Preflight aborts happen before any state is loaded
            if ctx.state is not None:
                self.store.save(ctx.state)
                remove_old_files(self.config.log_dir, self.config.log_retention_days, "*.log")

        if phase is Phase.ABORT:
            return PREFLIGHT_EXIT_CODE

        logger.info(
            f"Run {ctx.run_id} finished in {format_duration(time.monotonic() - started)} "
            f"with {ctx.failures} failed attempt(s)"
        )
        return ctx.failures

    def _start(self, ctx: RunContext) -> Phase:
        logger.info(f"Starting backup run {ctx.run_id}")
        return Phase.PREFLIGHT

    def _preflight(self, ctx: RunContext) -> Phase:
        if self.config.require_elevation and not self.elevated():
            logger.error("Backups must run with administrator/root privileges")
            return Phase.ABORT
        if not self.config.log_dir.is_dir():
            logger.error(f"Log directory {self.config.log_dir} does not exist")
            return Phase.ABORT

        ctx.state = self.store.load()
        self.health.start()
        return Phase.CHECK_CONNECTIVITY

    def _check_connectivity(self, ctx: RunContext) -> Phase:
        ctx.attempt_index += 1
        ctx.backup_ok = False
        ctx.attempt = RunAttempt.create(self.config.log_dir, ctx.run_id, ctx.attempt_index).open()
        logger.info(f"Attempt {ctx.attempt_index} of {self.config.global_retry_attempts}")

        repository = self.config.engine.repository_uri()
        if self.gate.is_ready(repository, self.config.internet_test_attempts):
            return Phase.UNLOCK

        logger.error(f"Repository {repository} is not reachable, skipping this attempt")
        return Phase.EVALUATE

    def _unlock(self, ctx: RunContext) -> Phase:
        # Sole owner of the repository: any lock is left over from a crashed run
        try:
            locks = self.client.list_locks()
        except EngineError as e:
            logger.error(f"Could not list repository locks: {e}")
            return Phase.RUN_BACKUP

        if locks:
            logger.warning(f"Removing {len(locks)} stale repository lock(s)")
            self.client.unlock()
            self.sleep(self.config.unlock_settle_seconds)
        return Phase.RUN_BACKUP

    def _run_backup(self, ctx: RunContext) -> Phase:
        ctx.backup_ok = self.runner.run_all(self.config.sources, self.config.engine.exclude_files)
        return Phase.RUN_MAINTENANCE if ctx.backup_ok else Phase.EVALUATE

    def _run_maintenance(self, ctx: RunContext) -> Phase:
        self.sleep(self.config.maintenance_settle_seconds)
        ctx.state = self.scheduler.run_if_due(self.config.maintenance, ctx.state)
        return Phase.EVALUATE

    def _evaluate(self, ctx: RunContext) -> Phase:
        attempt = ctx.attempt
        attempt.close()

        if attempt.succeeded:
            logger.info(f"Backup attempt {attempt.index} succeeded")
            self.health.success(read_text(attempt.success_log))
            return Phase.DONE

        ctx.failures += 1
        ctx.attempts_left -= 1
        logger.warning(f"Backup attempt {attempt.index} failed, see {attempt.error_log}")

        if ctx.attempts_left > 0:
            return Phase.SCHEDULE_RETRY

        logger.error(f"Giving up after {ctx.failures} failed attempt(s)")
        self.health.failure(self._failure_digest(attempt))
        return Phase.EXHAUSTED

    def _schedule_retry(self, ctx: RunContext) -> Phase:
        logger.info(
            f"{ctx.attempts_left} attempt(s) left, retrying in "
            f"{self.config.retry_backoff_minutes:g} minutes"
        )
        self.sleep(self.config.retry_backoff_minutes * 60)
        return Phase.CHECK_CONNECTIVITY

    def _failure_digest(self, attempt: RunAttempt) -> str:
        combined = read_text(attempt.success_log) + read_text(attempt.error_log)
        return tail_lines(combined, self.config.health.tail_lines)
