"""
Discovery module - Detects the host hardware.

Components:
- HardwareProfiler: CPU cores, RAM, disk and default network interface
"""

from .system import HardwareProfiler, ProfilerConfig

__all__ = [
    "HardwareProfiler",
    "ProfilerConfig",
]
