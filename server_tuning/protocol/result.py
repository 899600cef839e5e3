"""
BenchmarkResult - Runner → Store protocol.

Contains per-round samples, their averages and the single performance score.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any

from .hardware import HardwareProfile


@dataclass
class RunSample:
    """Metrics captured during one benchmark round."""
    web_requests_per_second: float = 0.0
    web_response_time_ms: float = 0.0
    database_queries_per_second: float = 0.0
    cpu_usage_percent: float = 0.0
    memory_usage_percent: float = 0.0
    load_average: float = 0.0
    run: int = 0


@dataclass
class BenchmarkAverages:
    """Arithmetic means over all rounds."""
    web_requests_per_second: float = 0.0
    web_response_time_ms: float = 0.0
    database_queries_per_second: float = 0.0

    @classmethod
    def from_runs(cls, runs: List[RunSample]) -> "BenchmarkAverages":
        if not runs:
            return cls()
        count = len(runs)
        return cls(
            web_requests_per_second=sum(r.web_requests_per_second for r in runs) / count,
            web_response_time_ms=sum(r.web_response_time_ms for r in runs) / count,
            database_queries_per_second=sum(r.database_queries_per_second for r in runs) / count,
        )


@dataclass
class BenchmarkParameters:
    """How the benchmark was driven."""
    rounds: int = 3
    requests: int = 1000
    concurrency: int = 10
    db_iterations: int = 10000
    url: str = "http://localhost/"


def performance_score(averages: BenchmarkAverages) -> int:
    """
    (avg_rps + avg_qps) / avg_response_time_ms, floor-divided to an integer.

    A non-positive response time means no web measurement was taken;
    the score is 0 in that case.
    """
    if averages.web_response_time_ms <= 0:
        return 0
    total = averages.web_requests_per_second + averages.database_queries_per_second
    return int(total // averages.web_response_time_ms)


@dataclass
class BenchmarkResult:
    """One benchmark invocation (append-only record)."""
    profile_name: str
    hardware_basis: HardwareProfile
    benchmark_date: str
    parameters: BenchmarkParameters = field(default_factory=BenchmarkParameters)
    runs: List[RunSample] = field(default_factory=list)
    averages: BenchmarkAverages = field(default_factory=BenchmarkAverages)
    performance_score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["hardware_basis"] = self.hardware_basis.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BenchmarkResult":
        """Create from dictionary (JSON deserialization)."""
        return cls(
            profile_name=data["profile_name"],
            hardware_basis=HardwareProfile.from_dict(data["hardware_basis"]),
            benchmark_date=data.get("benchmark_date", ""),
            parameters=BenchmarkParameters(**data.get("parameters", {})),
            runs=[RunSample(**run) for run in data.get("runs", [])],
            averages=BenchmarkAverages(**data.get("averages", {})),
            performance_score=int(data.get("performance_score", 0)),
        )


@dataclass
class PerformanceSnapshot:
    """One-off analysis of current system performance."""
    timestamp: str
    hostname: str
    hardware: HardwareProfile
    cpu_idle_percent: float
    memory_free_percent: float
    load_average_1min: float
    disk_used_percent: float
    network_connections: int
    web_response_time_ms: Optional[float]
    db_query_time_ms: Optional[float]
    current_profile: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["hardware"] = self.hardware.to_dict()
        return data
