"""
ProfileApplier - Safe application of a tuning profile to the host.

Each managed subsystem goes through the same phases, in fixed order
(web server, runtime, database, cache, kernel):

1. BACKUP - Copy the current config file into the run's backup set
2. MERGE - Render settings with the subsystem's builder and merge them in
3. VALIDATE - Run the subsystem's syntax check; restore the backup on failure
4. RELOAD - Reload/restart the service if anything changed
5. STABILIZE - Give the service time to settle

A failing subsystem is recorded in the ApplyReport and the run continues
with the next one. The active-profile pointer only moves when nothing
failed.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional

from filelock import FileLock, Timeout

from ..config import SubsystemConfig
from ..protocol.errors import (
    ApplyFailed,
    ApplyInProgress,
    BackupError,
    BackupNotFound,
    SubsystemError,
    SubsystemReloadFailure,
)
from ..protocol.profile import SUBSYSTEM_ORDER, TuningProfile
from ..protocol.tuning import ApplyReport, SubsystemOutcome, SubsystemStatus
from ..store.profiles import ProfileStore
from .service import ServiceController
from .snapshot import BackupHandle, BackupManager, BackupSet
from .surface import ConfigSurface

logger = logging.getLogger(__name__)


@dataclass
class ApplierConfig:
    """Configuration for the profile applier."""
    stabilization_seconds: float = 10.0
    keep_backups: int = 20


class ProfileApplier:
    """
    Applies tuning profiles with per-subsystem backup and rollback.

    At most one apply or revert runs per host; the run holds an exclusive
    file lock for its whole duration.
    """

    def __init__(
        self,
        store: ProfileStore,
        surfaces: Dict[str, ConfigSurface],
        subsystems: Dict[str, SubsystemConfig],
        backup_manager: BackupManager,
        lock_path: Path,
        service_controller: Optional[ServiceController] = None,
        config: Optional[ApplierConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.surfaces = surfaces
        self.subsystems = subsystems
        self.backups = backup_manager
        self.lock_path = Path(lock_path)
        self.services = service_controller or ServiceController()
        self.config = config or ApplierConfig()
        self._sleep = sleep

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the host-wide apply lock, failing fast if it is taken."""
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(str(self.lock_path), timeout=0)
        try:
            lock.acquire()
        except Timeout:
            raise ApplyInProgress(f"Another apply or revert is running (lock: {self.lock_path})")
        try:
            yield
        finally:
            lock.release()

    # =========================================================================
    # Apply
    # =========================================================================

    def apply(self, profile: TuningProfile, dry_run: bool = False) -> ApplyReport:
        """
        Apply a profile to every managed subsystem.

        Args:
            profile: The profile to apply
            dry_run: Compute the changes without touching anything

        Returns:
            ApplyReport with one outcome per subsystem

        Raises:
            ApplyInProgress: If another run holds the lock
            ApplyFailed: If every attempted subsystem failed
        """
        with self._exclusive():
            return self._apply_locked(profile, dry_run)

    def _apply_locked(self, profile: TuningProfile, dry_run: bool) -> ApplyReport:
        logger.info("%s profile %s", "Previewing" if dry_run else "Applying", profile.name)
        backup_set = None if dry_run else self.backups.begin(profile.name)
        report = ApplyReport(profile_name=profile.name, started_at=datetime.now(), dry_run=dry_run)

        for name in SUBSYSTEM_ORDER:
            outcome = self._apply_subsystem(profile, name, backup_set)
            report.outcomes.append(outcome)
            self._log_outcome(outcome)

        report.finished_at = datetime.now()
        if backup_set is not None and backup_set.path.exists():
            report.backup_dir = str(backup_set.path)

        if dry_run:
            return report

        self.backups.cleanup_old(self.config.keep_backups)

        if report.attempted and len(report.failed) == len(report.attempted):
            raise ApplyFailed(
                f"Applying {profile.name} failed for every subsystem: {', '.join(report.failed)}",
                report=report,
            )

        if report.failed:
            logger.warning(
                "Partial success applying %s: %s failed; active profile left unchanged",
                profile.name, ", ".join(report.failed),
            )
        else:
            self.store.set_active(profile.name)
            report.activated = True
            logger.info("Profile %s applied (%d change(s))", profile.name, report.total_changes)

        return report

    def _apply_subsystem(
        self,
        profile: TuningProfile,
        name: str,
        backup_set: Optional[BackupSet],
    ) -> SubsystemOutcome:
        sub = self.subsystems.get(name)
        surface = self.surfaces.get(name)
        if sub is None or surface is None or not sub.enabled:
            return SubsystemOutcome(name, SubsystemStatus.SKIPPED, error="disabled")
        if not surface.available:
            return SubsystemOutcome(
                name, SubsystemStatus.SKIPPED,
                error=f"configuration file not found: {surface.path}",
                config_path=str(surface.path),
            )

        outcome = SubsystemOutcome(name, SubsystemStatus.SUCCEEDED, config_path=str(surface.path))
        native = surface.builder.build(profile.subsystem_settings(name))

        try:
            new_text, changes = surface.merge(surface.read(), native)
        except (OSError, ValueError) as e:
            return self._failed(outcome, SubsystemError(name, f"could not read {surface.path}: {e}"))
        outcome.changes = changes

        if backup_set is None:
            return outcome

        # file already matches: back it up, nothing to write or reload
        if not changes:
            try:
                handle = backup_set.take(name, surface.path)
            except BackupError as e:
                return self._failed(outcome, e)
            outcome.backup_path = str(handle.backup_path) if handle.backup_path else None
            return outcome

        handle = None
        try:
            with backup_set.protect(name, surface.path) as handle:
                outcome.backup_path = str(handle.backup_path) if handle.backup_path else None
                surface.write(new_text)
                surface.validate()
        except SubsystemError as e:
            outcome.rolled_back = bool(handle and handle.restored)
            return self._failed(outcome, e)
        except OSError as e:
            outcome.rolled_back = bool(handle and handle.restored)
            return self._failed(outcome, SubsystemError(name, f"write failed: {e}"))

        try:
            outcome.reloaded = self._reload(sub, surface)
        except SubsystemReloadFailure as e:
            return self._failed(outcome, e)

        if outcome.reloaded and self.config.stabilization_seconds > 0:
            logger.debug("Waiting %ss for %s to stabilize", self.config.stabilization_seconds, name)
            self._sleep(self.config.stabilization_seconds)

        return outcome

    def _failed(self, outcome: SubsystemOutcome, error: SubsystemError) -> SubsystemOutcome:
        outcome.status = SubsystemStatus.FAILED
        outcome.error = str(error)
        outcome.error_type = error.error_type
        if error.output:
            logger.debug("%s output:\n%s", outcome.subsystem, error.output)
        return outcome

    def _reload(self, sub: SubsystemConfig, surface: ConfigSurface) -> bool:
        """
        Make the subsystem pick up its new configuration.

        Returns:
            True if a reload/restart was performed

        Raises:
            SubsystemReloadFailure: If the reload command or service action failed
        """
        if sub.reload_command:
            cmd = sub.reload_command.replace("{path}", str(surface.path))
            if not self.services.run(cmd):
                raise SubsystemReloadFailure(sub.name, f"reload command failed: {cmd}")
            return True

        if not sub.service:
            return False

        if not self.services.is_running(sub.service):
            logger.warning(
                "%s service %s is not running; new configuration takes effect on next start",
                sub.name, sub.service,
            )
            return False

        if sub.action == "reload":
            ok = self.services.reload(sub.service)
        else:
            ok = self.services.restart(sub.service)
        if not ok:
            logs = self.services.get_tail_logs(sub.service)
            raise SubsystemReloadFailure(
                sub.name, f"{sub.action} of {sub.service} failed", output="\n".join(logs)
            )
        logger.info("%s: %s %s", sub.name, sub.action, sub.service)
        return True

    def _log_outcome(self, outcome: SubsystemOutcome) -> None:
        if outcome.status == SubsystemStatus.SKIPPED:
            logger.info("%s: skipped (%s)", outcome.subsystem, outcome.error)
        elif outcome.failed:
            logger.error(
                "%s: %s%s", outcome.subsystem, outcome.error,
                " (rolled back)" if outcome.rolled_back else "",
            )
        else:
            for change in outcome.changes:
                logger.info(
                    "%s: %s %s -> %s", outcome.subsystem, change.key,
                    change.previous if change.previous is not None else "(unset)", change.applied,
                )

    # =========================================================================
    # Revert
    # =========================================================================

    def revert(self, backup_name: Optional[str] = None) -> ApplyReport:
        """
        Restore every file of a backup set and reload the affected services.

        Args:
            backup_name: Backup set directory name (default: most recent)

        Returns:
            ApplyReport describing the restore

        Raises:
            BackupNotFound: If there is no such backup set
            ApplyInProgress: If another run holds the lock
            ApplyFailed: If every subsystem failed to restore
        """
        with self._exclusive():
            backup_set = self.backups.get(backup_name) if backup_name else self.backups.latest()
            if backup_set is None:
                raise BackupNotFound(f"No backup set found: {backup_name or '(none taken yet)'}")

            logger.info("Reverting to backup set %s", backup_set.name)
            report = ApplyReport(
                profile_name=backup_set.profile_name,
                started_at=datetime.now(),
                backup_dir=str(backup_set.path),
            )
            for name in SUBSYSTEM_ORDER:
                handle = backup_set.handles.get(name)
                if handle is None:
                    continue
                outcome = self._revert_subsystem(name, handle)
                report.outcomes.append(outcome)
                self._log_outcome(outcome)
            report.finished_at = datetime.now()

        if report.attempted and len(report.failed) == len(report.attempted):
            raise ApplyFailed(f"Revert of {backup_set.name} failed for every subsystem", report=report)
        return report

    def _revert_subsystem(self, name: str, handle: BackupHandle) -> SubsystemOutcome:
        outcome = SubsystemOutcome(
            name, SubsystemStatus.SUCCEEDED,
            config_path=str(handle.source),
            backup_path=str(handle.backup_path) if handle.backup_path else None,
        )
        try:
            handle.restore()
        except BackupError as e:
            return self._failed(outcome, e)
        except OSError as e:
            return self._failed(outcome, BackupError(name, f"restore failed: {e}"))
        outcome.rolled_back = True

        sub = self.subsystems.get(name)
        surface = self.surfaces.get(name)
        if sub is None or surface is None or not sub.enabled:
            return outcome
        try:
            outcome.reloaded = self._reload(sub, surface)
        except SubsystemReloadFailure as e:
            return self._failed(outcome, e)
        return outcome

