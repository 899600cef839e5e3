"""
BenchmarkRunner - Measures how well the host performs under a profile.

Each round runs:
- An HTTP burst through the load generator (ApacheBench)
- The database workload query
- An instantaneous CPU/memory/load sample

Rounds run strictly one after another. The runner never touches
configuration or the active-profile pointer.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from ..protocol.errors import LoadToolUnavailable, ProfileNotFound
from ..protocol.hardware import HardwareProfile
from ..protocol.profile import format_timestamp
from ..protocol.result import (
    BenchmarkAverages,
    BenchmarkParameters,
    BenchmarkResult,
    RunSample,
    performance_score,
)
from ..store.benchmarks import BenchmarkLog
from ..store.profiles import ProfileStore
from ..telemetry.sysstat import MetricsSource, SystemMetricsSource
from .loadgen import ApacheBench, LoadGenerator, LoadResult
from .workload import DatabaseWorkload

logger = logging.getLogger(__name__)


@dataclass
class RunnerConfig:
    """Configuration for benchmark execution."""
    url: str = "http://localhost/"
    rounds: int = 3
    requests: int = 1000
    concurrency: int = 10
    round_pause: float = 10.0
    settle_seconds: float = 30.0
    db_iterations: int = 10000


class BenchmarkRunner:
    """Runs benchmark rounds and records the result in the benchmark log."""

    def __init__(
        self,
        store: ProfileStore,
        log: BenchmarkLog,
        hardware: Callable[[], HardwareProfile],
        load_generator: Optional[LoadGenerator] = None,
        workload: Optional[DatabaseWorkload] = None,
        metrics: Optional[MetricsSource] = None,
        config: Optional[RunnerConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize benchmark runner.

        Args:
            store: Profile store (the profile must exist)
            log: Benchmark log the result is appended to
            hardware: Callable returning the current hardware profile
            load_generator: HTTP load generator (default: ApacheBench)
            workload: Database workload (default: local PostgreSQL)
            metrics: Host metrics source
            config: Round parameters
            sleep: Blocking sleep used for settle and pause intervals
        """
        self.store = store
        self.log = log
        self.hardware = hardware
        self.load_generator = load_generator or ApacheBench()
        self.workload = workload or DatabaseWorkload()
        self.metrics = metrics or SystemMetricsSource()
        self.config = config or RunnerConfig()
        self._sleep = sleep

    def run(self, profile_name: str, rounds: Optional[int] = None) -> BenchmarkResult:
        """
        Benchmark the host under a stored profile.

        Args:
            profile_name: Name of an existing profile
            rounds: Number of rounds (default from config)

        Returns:
            BenchmarkResult (also appended to the benchmark log)

        Raises:
            ProfileNotFound: If the profile does not exist
            ValueError: If rounds is less than 1
        """
        if not self.store.exists(profile_name):
            raise ProfileNotFound(profile_name)

        rounds = self.config.rounds if rounds is None else rounds
        if rounds < 1:
            raise ValueError("rounds must be at least 1")

        params = BenchmarkParameters(
            rounds=rounds,
            requests=self.config.requests,
            concurrency=self.config.concurrency,
            db_iterations=self.config.db_iterations,
            url=self.config.url,
        )
        hardware = self.hardware()

        if self.config.settle_seconds > 0:
            logger.info("Waiting %ss for services to settle", self.config.settle_seconds)
            self._sleep(self.config.settle_seconds)

        runs = []
        for index in range(1, rounds + 1):
            logger.info("Benchmark round %d/%d for %s", index, rounds, profile_name)
            sample = self._run_round(index, params)
            runs.append(sample)
            logger.info(
                "Round %d: %.2f req/s, %.2f ms, %d db q/s",
                index, sample.web_requests_per_second, sample.web_response_time_ms,
                sample.database_queries_per_second,
            )
            if index < rounds and self.config.round_pause > 0:
                self._sleep(self.config.round_pause)

        averages = BenchmarkAverages.from_runs(runs)
        result = BenchmarkResult(
            profile_name=profile_name,
            hardware_basis=hardware,
            benchmark_date=format_timestamp(datetime.now(timezone.utc)),
            parameters=params,
            runs=runs,
            averages=averages,
            performance_score=performance_score(averages),
        )
        self.log.append(result)
        logger.info("Benchmark of %s complete: score %d", profile_name, result.performance_score)
        return result

    def _run_round(self, index: int, params: BenchmarkParameters) -> RunSample:
        try:
            load = self.load_generator.run(params.url, params.requests, params.concurrency)
        except LoadToolUnavailable as e:
            logger.warning("HTTP load test unavailable in round %d: %s", index, e)
            load = LoadResult()

        return RunSample(
            run=index,
            web_requests_per_second=load.requests_per_second,
            web_response_time_ms=load.response_time_ms,
            database_queries_per_second=self.workload.queries_per_second(params.db_iterations),
            cpu_usage_percent=self.metrics.cpu_percent(),
            memory_usage_percent=self.metrics.memory_percent(),
            load_average=self.metrics.load_average(),
        )
