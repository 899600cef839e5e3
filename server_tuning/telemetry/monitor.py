"""
ContinuousMonitor - Periodic threshold checks on a background thread.

Every tick samples CPU, memory and the local endpoint's response time and
logs one warning per threshold breach. Breaches are advisory: they are
returned as data and never raised.
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from ..store.state import CurrentProfileState
from .sysstat import MetricsSource, SystemMetricsSource

logger = logging.getLogger(__name__)

METRIC_CPU = "cpu_percent"
METRIC_MEMORY = "memory_percent"
METRIC_RESPONSE = "response_time_ms"

HINTS = {
    METRIC_CPU: "consider reducing PHP max_children or optimizing code",
    METRIC_MEMORY: "consider reducing buffer sizes or adding RAM",
    METRIC_RESPONSE: "consider enabling more caching or optimizing database",
}


@dataclass
class Thresholds:
    """Breach thresholds (a value strictly above the threshold breaches)."""
    cpu_percent: float = 80.0
    memory_percent: float = 85.0
    response_time_ms: float = 5000.0


@dataclass
class ThresholdBreach:
    """One metric above its threshold during a tick."""
    metric: str
    value: float
    threshold: float
    profile_name: Optional[str]
    hint: str

    def message(self) -> str:
        return (
            f"{self.metric} {self.value:.1f} exceeds threshold {self.threshold:g} "
            f"(profile: {self.profile_name or 'none'}): {self.hint}"
        )


class MonitorHandle:
    """Handle on a running monitor thread."""

    def __init__(self, thread: threading.Thread, stop_event: threading.Event):
        self._thread = thread
        self._stop = stop_event

    def cancel(self) -> None:
        """Stop before the next tick; an in-flight sample finishes."""
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread.is_alive()


class ContinuousMonitor:
    """Samples host metrics and warns about threshold breaches."""

    def __init__(
        self,
        state: CurrentProfileState,
        url: str = "http://localhost/",
        metrics: Optional[MetricsSource] = None,
        thresholds: Optional[Thresholds] = None,
        interval: float = 300.0,
    ):
        self.state = state
        self.url = url
        self.metrics = metrics or SystemMetricsSource()
        self.thresholds = thresholds or Thresholds()
        self.interval = interval

    def check(self) -> List[ThresholdBreach]:
        """Run one tick and return the breaches it found."""
        profile_name = self.state.get()
        cpu = self.metrics.cpu_percent()
        memory = self.metrics.memory_percent()
        response = self.metrics.response_time_ms(self.url)

        breaches = []
        if cpu > self.thresholds.cpu_percent:
            breaches.append(self._breach(METRIC_CPU, cpu, self.thresholds.cpu_percent, profile_name))
        if memory > self.thresholds.memory_percent:
            breaches.append(self._breach(METRIC_MEMORY, memory, self.thresholds.memory_percent, profile_name))
        if response is None:
            logger.warning("Endpoint %s is unreachable (profile: %s)", self.url, profile_name or "none")
        elif response > self.thresholds.response_time_ms:
            breaches.append(
                self._breach(METRIC_RESPONSE, response, self.thresholds.response_time_ms, profile_name)
            )

        for breach in breaches:
            logger.warning(breach.message())

        logger.info(
            "CPU %.1f%%, memory %.1f%%, response %s (profile: %s)",
            cpu, memory, f"{response:.1f} ms" if response is not None else "n/a", profile_name or "none",
        )
        return breaches

    @staticmethod
    def _breach(metric: str, value: float, threshold: float, profile_name: Optional[str]) -> ThresholdBreach:
        return ThresholdBreach(
            metric=metric,
            value=value,
            threshold=threshold,
            profile_name=profile_name,
            hint=HINTS[metric],
        )

    def start(self, interval: Optional[float] = None) -> MonitorHandle:
        """
        Start ticking on a daemon thread.

        Args:
            interval: Seconds between ticks (default from constructor)

        Returns:
            MonitorHandle used to cancel and join the thread
        """
        interval = self.interval if interval is None else interval
        if interval <= 0:
            raise ValueError("interval must be positive")

        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._loop, args=(interval, stop_event), name="server-tuning-monitor", daemon=True
        )
        thread.start()
        logger.info("Performance monitor started (interval %ss)", interval)
        return MonitorHandle(thread, stop_event)

    def _loop(self, interval: float, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            try:
                self.check()
            except Exception:
                logger.exception("Monitor tick failed")
            if stop_event.wait(interval):
                break
        logger.info("Performance monitor stopped")
