"""
ProfileGenerator - Derives a TuningProfile from a HardwareProfile.

Pure and deterministic: the same hardware always yields byte-identical
settings. Every formula output is clamped to its floor/ceiling before it is
written; secondary settings are fixed fractions of the clamped primaries.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from ..protocol.errors import ProfileGenerationError
from ..protocol.hardware import HardwareProfile
from ..protocol.profile import TuningProfile, ServerTier, SettingPairs

logger = logging.getLogger(__name__)


# (subsystem, key) -> (floor, ceiling); None means unbounded on that side
SETTING_BOUNDS: Dict[Tuple[str, str], Tuple[Optional[int], Optional[int]]] = {
    ("web_server", "max_connections"): (500, 10000),
    ("web_server", "worker_processes"): (2, 32),
    ("runtime", "memory_limit_mb"): (128, 512),
    ("runtime", "max_children"): (10, 100),
    ("database", "buffer_pool_mb"): (256, None),
    ("database", "max_connections"): (50, 1000),
    ("cache", "maxmemory_mb"): (64, None),
}

# Tier thresholds (strictly greater than)
LARGE_TIER_RAM_MB = 4000
LARGE_TIER_CORES = 4
MEDIUM_TIER_RAM_MB = 2000
MEDIUM_TIER_CORES = 2


def clamp(value: int, floor: Optional[int] = None, ceiling: Optional[int] = None) -> int:
    """Constrain value to [floor, ceiling]."""
    if floor is not None and value < floor:
        value = floor
    if ceiling is not None and value > ceiling:
        value = ceiling
    return value


def _bounded(subsystem: str, key: str, value: int) -> int:
    floor, ceiling = SETTING_BOUNDS[(subsystem, key)]
    return clamp(value, floor, ceiling)


def classify_tier(hw: HardwareProfile) -> ServerTier:
    """First match wins: large, then medium, otherwise small."""
    if hw.total_ram_mb > LARGE_TIER_RAM_MB and hw.cpu_cores > LARGE_TIER_CORES:
        return ServerTier.LARGE
    if hw.total_ram_mb > MEDIUM_TIER_RAM_MB and hw.cpu_cores > MEDIUM_TIER_CORES:
        return ServerTier.MEDIUM
    return ServerTier.SMALL


class ProfileGenerator:
    """
    Applies the fixed scaling formulas to host capacity.

    | Setting                     | Formula          | Floor | Ceiling |
    |-----------------------------|------------------|-------|---------|
    | web max connections         | ram * 2          | 500   | 10000   |
    | web worker processes        | cores * 2        | 2     | 32      |
    | runtime memory limit (MB)   | ram / 4          | 128   | 512     |
    | runtime max children        | ram / 50         | 10    | 100     |
    | database buffer pool (MB)   | ram * 70%        | 256   | -       |
    | database max connections    | ram / 12         | 50    | 1000    |
    | cache max memory (MB)       | ram * 20%        | 64    | -       |
    """

    def generate(
        self,
        hw: HardwareProfile,
        name: str,
        generated_at: Optional[datetime] = None,
    ) -> TuningProfile:
        """
        Generate a tuning profile for the given hardware.

        Args:
            hw: Detected host capacity
            name: Profile name (store key)
            generated_at: Generation timestamp (defaults to now, UTC)

        Returns:
            TuningProfile with clamped settings

        Raises:
            ProfileGenerationError: If any bounded setting escapes its bounds
        """
        settings = self.build_settings(hw)
        profile = TuningProfile(
            name=name,
            generated_at=generated_at or datetime.now(timezone.utc),
            hardware_basis=hw,
            server_tier=classify_tier(hw),
            settings=settings,
        )
        check_bounds(profile)

        logger.info(
            "Generated profile %s (tier %s) from %s",
            name, profile.server_tier.value, hw.describe(),
        )
        return profile

    def build_settings(self, hw: HardwareProfile) -> Dict[str, SettingPairs]:
        """Compute the ordered per-subsystem settings."""
        ram = hw.total_ram_mb
        cores = hw.cpu_cores

        max_connections = _bounded("web_server", "max_connections", ram * 2)
        worker_processes = _bounded("web_server", "worker_processes", cores * 2)
        memory_limit = _bounded("runtime", "memory_limit_mb", ram // 4)
        max_children = _bounded("runtime", "max_children", ram // 50)
        buffer_pool = _bounded("database", "buffer_pool_mb", ram * 70 // 100)
        db_connections = _bounded("database", "max_connections", ram // 12)
        cache_memory = _bounded("cache", "maxmemory_mb", ram * 20 // 100)

        return {
            "web_server": [
                ("max_connections", max_connections),
                ("max_ssl_connections", max_connections // 2),
                ("worker_processes", worker_processes),
                ("keep_alive_timeout", 5),
                ("max_keep_alive_requests", 1000),
                ("gzip_compression", True),
                ("gzip_compression_level", 6),
                ("cache_expire", 3600),
            ],
            "runtime": [
                ("memory_limit_mb", memory_limit),
                ("max_execution_time", 300),
                ("max_input_time", 300),
                ("max_children", max_children),
                ("max_requests", 1000),
                ("process_idle_timeout", 60),
                ("opcache_memory_mb", memory_limit // 2),
                ("opcache_max_accelerated_files", 20000),
            ],
            "database": [
                ("buffer_pool_mb", buffer_pool),
                ("max_connections", db_connections),
                ("worker_processes", cores),
                ("maintenance_work_mem_mb", ram * 5 // 100),
                ("wal_size_mb", 256),
                ("synchronous_commit", False),
                ("io_concurrency", 200),
                ("temp_buffers_mb", 128),
            ],
            "cache": [
                ("maxmemory_mb", cache_memory),
                ("maxmemory_policy", "allkeys-lru"),
                ("tcp_keepalive", 60),
                ("timeout", 300),
            ],
            "kernel": [
                ("vm.swappiness", 10),
                ("net.core.somaxconn", 65535),
                ("net.core.netdev_max_backlog", 30000),
                ("net.ipv4.tcp_max_syn_backlog", 30000),
                ("fs.file-max", 2097152),
            ],
        }


def check_bounds(profile: TuningProfile) -> None:
    """Raise ProfileGenerationError if a bounded setting is out of range."""
    for (subsystem, key), (floor, ceiling) in SETTING_BOUNDS.items():
        value = profile.get(subsystem, key)
        if value is None:
            raise ProfileGenerationError(f"{subsystem}.{key} missing from profile {profile.name}")
        if floor is not None and value < floor:
            raise ProfileGenerationError(f"{subsystem}.{key}={value} below floor {floor}")
        if ceiling is not None and value > ceiling:
            raise ProfileGenerationError(f"{subsystem}.{key}={value} above ceiling {ceiling}")
