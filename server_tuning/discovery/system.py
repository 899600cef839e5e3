"""
HardwareProfiler - Detects the host hardware that tuning formulas scale with.

Uses psutil for CPU, memory and disk, and standard OS tools
(ip, route) for the default network interface.
"""

import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Dict, Any, Optional

import psutil

from ..protocol.errors import HardwareDetectionError
from ..protocol.hardware import HardwareProfile, UNKNOWN_INTERFACE

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 ** 2
BYTES_PER_GB = 1024 ** 3


@dataclass
class ProfilerConfig:
    """Configuration for hardware detection."""
    disk_path: str = "/"
    command_timeout: int = 10


class HardwareProfiler:
    """
    Reads the host's hardware profile.

    Cores, RAM and disk are mandatory; the network interface is best effort.
    """

    def __init__(self, config: Optional[ProfilerConfig] = None):
        self.config = config or ProfilerConfig()

    def _run_command(self, cmd: str) -> str:
        """Run a command locally, returning stdout ('' on failure)."""
        try:
            result = subprocess.run(
                cmd, shell=True, capture_output=True, text=True,
                timeout=self.config.command_timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("%s failed: %s", cmd, e)
            return ""
        return result.stdout.strip()

    def detect(self) -> HardwareProfile:
        """
        Detect the current hardware profile.

        Raises:
            HardwareDetectionError: If cores, RAM or disk cannot be read
        """
        cpu = self._get_cpu_info()
        memory = self._get_memory_info()
        disk = self._get_disk_info()
        interface = self.get_network_interface()

        logger.info("CPU cores: %d", cpu["cores"])
        logger.info("RAM: %d MB total, %d MB available", memory["total_mb"], memory["available_mb"])
        logger.info(
            "Disk (%s): %d GB total, %d GB available",
            self.config.disk_path, disk["total_gb"], disk["available_gb"],
        )
        logger.info("Network interface: %s", interface)

        try:
            return HardwareProfile(
                cpu_cores=cpu["cores"],
                total_ram_mb=memory["total_mb"],
                total_disk_gb=disk["total_gb"],
                network_interface=interface,
            )
        except ValueError as e:
            raise HardwareDetectionError(f"Implausible hardware reading: {e}")

    def _get_cpu_info(self) -> Dict[str, Any]:
        cores = psutil.cpu_count(logical=True)
        if not cores:
            raise HardwareDetectionError("Could not determine CPU core count")
        return {"cores": int(cores)}

    def _get_memory_info(self) -> Dict[str, Any]:
        try:
            mem = psutil.virtual_memory()
        except (OSError, RuntimeError) as e:
            raise HardwareDetectionError(f"Could not read memory information: {e}")
        total_mb = int(mem.total // BYTES_PER_MB)
        if total_mb < 1:
            raise HardwareDetectionError("Total memory reads as zero")
        return {"total_mb": total_mb, "available_mb": int(mem.available // BYTES_PER_MB)}

    def _get_disk_info(self) -> Dict[str, Any]:
        try:
            usage = psutil.disk_usage(self.config.disk_path)
        except OSError as e:
            raise HardwareDetectionError(f"Could not read disk usage of {self.config.disk_path}: {e}")
        # sub-GB volumes count as 1 GB
        total_gb = max(1, int(usage.total // BYTES_PER_GB)) if usage.total else 0
        if total_gb < 1:
            raise HardwareDetectionError(f"Disk size of {self.config.disk_path} reads as zero")
        return {"total_gb": total_gb, "available_gb": int(usage.free // BYTES_PER_GB)}

    def get_network_interface(self) -> str:
        """Interface of the default route, or "unknown"."""
        output = self._run_command("ip route show default")
        match = re.search(r"\bdev\s+(\S+)", output)
        if match:
            return match.group(1)

        # Fallback for hosts without iproute2
        output = self._run_command("route -n")
        for line in output.splitlines():
            fields = line.split()
            if len(fields) >= 8 and fields[0] == "0.0.0.0":
                return fields[-1]

        logger.warning("Could not determine default network interface")
        return UNKNOWN_INTERFACE
