"""
Apply protocol - Applier → CLI.

An ApplyReport enumerates, per managed subsystem, what changed, what
failed and what was rolled back.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Any


class SubsystemStatus(str, Enum):
    """Outcome of one subsystem step."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class SettingChange:
    """A single native configuration key that differs from the file."""
    key: str
    previous: Optional[str]
    applied: str


@dataclass
class SubsystemOutcome:
    """Result of applying a profile to one subsystem."""
    subsystem: str
    status: SubsystemStatus
    changes: List[SettingChange] = field(default_factory=list)
    rolled_back: bool = False
    reloaded: bool = False
    backup_path: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    config_path: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == SubsystemStatus.FAILED


@dataclass
class ApplyReport:
    """Per-subsystem report of an apply (or revert) run."""
    profile_name: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    outcomes: List[SubsystemOutcome] = field(default_factory=list)
    backup_dir: Optional[str] = None
    dry_run: bool = False
    activated: bool = False

    @property
    def succeeded(self) -> List[str]:
        return [o.subsystem for o in self.outcomes if o.status == SubsystemStatus.SUCCEEDED]

    @property
    def failed(self) -> List[str]:
        return [o.subsystem for o in self.outcomes if o.status == SubsystemStatus.FAILED]

    @property
    def skipped(self) -> List[str]:
        return [o.subsystem for o in self.outcomes if o.status == SubsystemStatus.SKIPPED]

    @property
    def attempted(self) -> List[str]:
        return [o.subsystem for o in self.outcomes if o.status != SubsystemStatus.SKIPPED]

    @property
    def is_partial(self) -> bool:
        """Some, but not all, attempted subsystems failed."""
        return bool(self.failed) and len(self.failed) < len(self.attempted)

    @property
    def total_changes(self) -> int:
        return sum(len(o.changes) for o in self.outcomes)

    def outcome(self, subsystem: str) -> Optional[SubsystemOutcome]:
        for o in self.outcomes:
            if o.subsystem == subsystem:
                return o
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        for outcome in data["outcomes"]:
            outcome["status"] = SubsystemStatus(outcome["status"]).value
        return data
