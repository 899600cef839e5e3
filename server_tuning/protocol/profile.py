"""
TuningProfile - Generator → Store → Applier protocol.

A profile is a named, immutable set of per-subsystem settings derived from
a HardwareProfile snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Any, Tuple, Union
import json

from .hardware import HardwareProfile


# Apply order is fixed: web server → runtime → database → cache → kernel
SUBSYSTEM_ORDER: Tuple[str, ...] = (
    "web_server",
    "runtime",
    "database",
    "cache",
    "kernel",
)

SettingValue = Union[int, bool, str]
SettingPairs = List[Tuple[str, SettingValue]]


class ServerTier(str, Enum):
    """Coarse hardware-capacity classification."""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC timestamp with a trailing Z."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class TuningProfile:
    """Named tuning profile owned by the ProfileStore."""
    name: str
    generated_at: datetime
    hardware_basis: HardwareProfile
    server_tier: ServerTier
    settings: Dict[str, SettingPairs] = field(default_factory=dict)

    def subsystem_settings(self, subsystem: str) -> SettingPairs:
        """Ordered (key, value) pairs for one subsystem (empty if none)."""
        return list(self.settings.get(subsystem, []))

    def get(self, subsystem: str, key: str) -> Optional[SettingValue]:
        """Look up a single setting value."""
        for setting_key, value in self.settings.get(subsystem, []):
            if setting_key == key:
                return value
        return None

    def summary(self) -> "ProfileSummary":
        return ProfileSummary(
            name=self.name,
            server_tier=self.server_tier,
            generated_at=self.generated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary (settings keep their order)."""
        return {
            "name": self.name,
            "generated_at": format_timestamp(self.generated_at),
            "server_tier": self.server_tier.value,
            "hardware_basis": self.hardware_basis.to_dict(),
            "settings": {
                subsystem: [[key, value] for key, value in pairs]
                for subsystem, pairs in self.settings.items()
            },
        }

    def settings_json(self) -> str:
        """Canonical JSON rendering of the settings block."""
        return json.dumps(self.to_dict()["settings"], sort_keys=False, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TuningProfile":
        settings = {
            subsystem: [(str(key), value) for key, value in pairs]
            for subsystem, pairs in data.get("settings", {}).items()
        }
        return cls(
            name=data["name"],
            generated_at=parse_timestamp(data["generated_at"]),
            hardware_basis=HardwareProfile.from_dict(data["hardware_basis"]),
            server_tier=ServerTier(data["server_tier"]),
            settings=settings,
        )


@dataclass(frozen=True)
class ProfileSummary:
    """Summary info for listing profiles."""
    name: str
    server_tier: ServerTier
    generated_at: datetime
