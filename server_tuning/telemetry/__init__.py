"""
Telemetry module - Host metrics, threshold monitoring and analysis.

Components:
- MetricsSource / SystemMetricsSource: psutil + HTTP probe
- ContinuousMonitor: Background threshold checks
- PerformanceAnalyzer: One-off performance snapshot
"""

from .sysstat import MetricsSource, SystemMetricsSource
from .monitor import ContinuousMonitor, MonitorHandle, Thresholds, ThresholdBreach
from .analysis import PerformanceAnalyzer

__all__ = [
    "MetricsSource",
    "SystemMetricsSource",
    "ContinuousMonitor",
    "MonitorHandle",
    "Thresholds",
    "ThresholdBreach",
    "PerformanceAnalyzer",
]
