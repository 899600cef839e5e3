"""
HardwareProfile - Profiler → Generator protocol.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any


UNKNOWN_INTERFACE = "unknown"


@dataclass(frozen=True)
class HardwareProfile:
    """Host capacity snapshot, recomputed on every tuning run."""
    cpu_cores: int
    total_ram_mb: int
    total_disk_gb: int
    network_interface: str = UNKNOWN_INTERFACE  # informational only

    def __post_init__(self):
        for attr in ("cpu_cores", "total_ram_mb", "total_disk_gb"):
            value = getattr(self, attr)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{attr} must be an integer >= 1, got {value!r}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HardwareProfile":
        return cls(
            cpu_cores=int(data["cpu_cores"]),
            total_ram_mb=int(data["total_ram_mb"]),
            total_disk_gb=int(data["total_disk_gb"]),
            network_interface=data.get("network_interface") or UNKNOWN_INTERFACE,
        )

    def describe(self) -> str:
        return (
            f"{self.cpu_cores} cores, {self.total_ram_mb}MB RAM, "
            f"{self.total_disk_gb}GB disk, interface {self.network_interface}"
        )
