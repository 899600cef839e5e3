"""
PerformanceAnalyzer - One-off snapshot of current system performance.

The snapshot is written to current-performance.json so other tools can
pick up the latest reading.
"""

import json
import logging
import socket
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from ..protocol.hardware import HardwareProfile
from ..protocol.profile import format_timestamp
from ..protocol.result import PerformanceSnapshot
from ..runner.workload import DatabaseWorkload
from ..store.atomic import atomic_write_text
from ..store.state import CurrentProfileState
from .sysstat import MetricsSource

logger = logging.getLogger(__name__)


class PerformanceAnalyzer:
    """Collects a PerformanceSnapshot and persists it."""

    def __init__(
        self,
        hardware: Callable[[], HardwareProfile],
        metrics: MetricsSource,
        workload: DatabaseWorkload,
        state: CurrentProfileState,
        output_path: Path,
        url: str = "http://localhost/",
        db_iterations: int = 10000,
        disk_path: str = "/",
    ):
        self.hardware = hardware
        self.metrics = metrics
        self.workload = workload
        self.state = state
        self.output_path = Path(output_path)
        self.url = url
        self.db_iterations = db_iterations
        self.disk_path = disk_path

    def analyze(self, now: Optional[datetime] = None) -> PerformanceSnapshot:
        """Take a snapshot and write it to the output file."""
        snapshot = PerformanceSnapshot(
            timestamp=format_timestamp(now or datetime.now(timezone.utc)),
            hostname=socket.gethostname(),
            hardware=self.hardware(),
            cpu_idle_percent=round(100.0 - self.metrics.cpu_percent(), 1),
            memory_free_percent=round(100.0 - self.metrics.memory_percent(), 1),
            load_average_1min=self.metrics.load_average(),
            disk_used_percent=self.metrics.disk_percent(self.disk_path),
            network_connections=self.metrics.established_connections(),
            web_response_time_ms=self.metrics.response_time_ms(self.url),
            db_query_time_ms=self.workload.query_time_ms(self.db_iterations),
            current_profile=self.state.get(),
        )
        atomic_write_text(self.output_path, json.dumps(snapshot.to_dict(), indent=2) + "\n")
        logger.info("Performance analysis written to %s", self.output_path)
        return snapshot
