"""
Error taxonomy for the tuning engine.

Fatal errors (propagate to the caller):
- HardwareDetectionError, ProfileNotFound, InvalidProfileName,
  ProfileGenerationError, ApplyInProgress, ApplyFailed, BackupNotFound,
  ConfigError

Isolated errors (accumulated per subsystem into an ApplyReport):
- SubsystemValidationFailure, SubsystemReloadFailure, BackupError

Degrading errors (a benchmark round records zeros):
- LoadToolUnavailable

Threshold breaches are advisory and are modelled as data
(see telemetry.monitor.ThresholdBreach), never raised.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .tuning import ApplyReport


class TuningError(Exception):
    """Base class for all tuning engine errors."""
    pass


class ConfigError(TuningError):
    """Configuration file could not be loaded or is invalid."""
    pass


class HardwareDetectionError(TuningError):
    """A mandatory hardware metric (cores, RAM, disk) could not be read."""
    pass


class ProfileNotFound(TuningError):
    """Named tuning profile does not exist in the store."""

    def __init__(self, name: str):
        super().__init__(f"Tuning profile not found: {name}")
        self.name = name


class InvalidProfileName(TuningError, ValueError):
    """Profile name cannot be used as a store key."""
    pass


class ProfileInUse(TuningError):
    """Operation refused because the profile is the active one."""
    pass


class ProfileGenerationError(TuningError):
    """Generated settings violate their documented bounds."""
    pass


class SubsystemError(TuningError):
    """Failure isolated to a single managed subsystem."""

    error_type = "SUBSYSTEM_ERROR"

    def __init__(self, subsystem: str, message: str, output: str = ""):
        super().__init__(f"{subsystem}: {message}")
        self.subsystem = subsystem
        self.output = output


class SubsystemValidationFailure(SubsystemError):
    """Validation hook rejected the new configuration."""
    error_type = "VALIDATION_FAILED"


class SubsystemReloadFailure(SubsystemError):
    """Service control could not reload/restart the subsystem."""
    error_type = "RELOAD_FAILED"


class BackupError(SubsystemError):
    """Backup could not be taken, so the subsystem was not touched."""
    error_type = "BACKUP_FAILED"


class BackupNotFound(TuningError):
    """No backup set (or not the named one) is available to revert to."""
    pass


class ApplyInProgress(TuningError):
    """Another apply/revert run holds the host lock."""
    pass


class ApplyFailed(TuningError):
    """Every attempted subsystem failed during an apply run."""

    def __init__(self, message: str, report: Optional["ApplyReport"] = None):
        super().__init__(message)
        self.report = report


class LoadToolUnavailable(TuningError):
    """HTTP load-generation tool is missing or produced no usable output."""
    pass
