"""
Protocol module - Data exchanged between the engine components.

- HardwareProfile: Profiler → Generator
- TuningProfile: Generator → Store → Applier
- ApplyReport: Applier → CLI
- BenchmarkResult: Runner → Store
"""

from .hardware import HardwareProfile, UNKNOWN_INTERFACE
from .profile import (
    TuningProfile,
    ProfileSummary,
    ServerTier,
    SUBSYSTEM_ORDER,
)
from .tuning import ApplyReport, SubsystemOutcome, SubsystemStatus, SettingChange
from .result import (
    BenchmarkResult,
    BenchmarkAverages,
    BenchmarkParameters,
    RunSample,
    PerformanceSnapshot,
    performance_score,
)

__all__ = [
    "HardwareProfile",
    "UNKNOWN_INTERFACE",
    "TuningProfile",
    "ProfileSummary",
    "ServerTier",
    "SUBSYSTEM_ORDER",
    "ApplyReport",
    "SubsystemOutcome",
    "SubsystemStatus",
    "SettingChange",
    "BenchmarkResult",
    "BenchmarkAverages",
    "BenchmarkParameters",
    "RunSample",
    "PerformanceSnapshot",
    "performance_score",
]
