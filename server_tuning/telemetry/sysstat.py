"""
System metrics sources.

Provides:
- CPU and memory utilisation, disk usage and load average (psutil)
- Established TCP connections (psutil)
- Response time of an HTTP endpoint (requests)
"""

import logging
import os
import time
from typing import Optional

import psutil
import requests

logger = logging.getLogger(__name__)


class MetricsSource:
    """Interface for instantaneous host metrics."""

    def cpu_percent(self) -> float:
        raise NotImplementedError

    def memory_percent(self) -> float:
        raise NotImplementedError

    def disk_percent(self, path: str = "/") -> float:
        raise NotImplementedError

    def load_average(self) -> float:
        """1-minute load average."""
        raise NotImplementedError

    def established_connections(self) -> int:
        raise NotImplementedError

    def response_time_ms(self, url: str) -> Optional[float]:
        """Round-trip time of a GET to url, or None if unreachable."""
        raise NotImplementedError


class SystemMetricsSource(MetricsSource):
    """Reads metrics from the local host."""

    def __init__(self, cpu_interval: float = 1.0, request_timeout: float = 30.0):
        self.cpu_interval = cpu_interval
        self.request_timeout = request_timeout

    def cpu_percent(self) -> float:
        return float(psutil.cpu_percent(interval=self.cpu_interval))

    def memory_percent(self) -> float:
        return float(psutil.virtual_memory().percent)

    def disk_percent(self, path: str = "/") -> float:
        return float(psutil.disk_usage(path).percent)

    def load_average(self) -> float:
        return round(os.getloadavg()[0], 2)

    def established_connections(self) -> int:
        try:
            connections = psutil.net_connections(kind="tcp")
        except (psutil.AccessDenied, OSError) as e:
            logger.debug("Cannot list TCP connections: %s", e)
            return 0
        return sum(1 for c in connections if c.status == psutil.CONN_ESTABLISHED)

    def response_time_ms(self, url: str) -> Optional[float]:
        start = time.perf_counter()
        try:
            response = requests.get(url, timeout=self.request_timeout)
        except requests.RequestException as e:
            logger.debug("GET %s failed: %s", url, e)
            return None
        elapsed_ms = (time.perf_counter() - start) * 1000
        if response.status_code >= 500:
            logger.debug("GET %s returned %d", url, response.status_code)
        return round(elapsed_ms, 3)
