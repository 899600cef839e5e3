"""
server_tuning - Hardware-aware tuning engine for a web hosting stack

Derives settings for the web server, PHP runtime, PostgreSQL, Redis and
the kernel from the host's hardware, applies them with per-subsystem
backup and rollback, benchmarks the result and watches the host for
threshold breaches.

Usage:
    # As a module
    python -m server_tuning generate web-2024

    # Programmatically
    from server_tuning import HardwareProfiler, ProfileGenerator

    hardware = HardwareProfiler().detect()
    profile = ProfileGenerator().generate(hardware, "web-2024")
"""

__version__ = "1.0.0"

# Main exports
from .discovery import HardwareProfiler
from .tuning import ProfileGenerator, ProfileApplier
from .runner import BenchmarkRunner
from .telemetry import ContinuousMonitor
from .store import ProfileStore, CurrentProfileState, BenchmarkLog

# Protocol exports
from .protocol import (
    HardwareProfile,
    TuningProfile,
    ApplyReport,
    BenchmarkResult,
)

__all__ = [
    # Version
    "__version__",
    # Engine
    "HardwareProfiler",
    "ProfileGenerator",
    "ProfileApplier",
    "BenchmarkRunner",
    "ContinuousMonitor",
    # Store
    "ProfileStore",
    "CurrentProfileState",
    "BenchmarkLog",
    # Protocol
    "HardwareProfile",
    "TuningProfile",
    "ApplyReport",
    "BenchmarkResult",
]
