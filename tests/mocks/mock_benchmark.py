"""
Mock benchmark collaborators - Return scripted results without running ab
or touching PostgreSQL.
"""

from typing import List, Optional, Sequence, Union

from server_tuning.protocol.errors import LoadToolUnavailable
from server_tuning.runner.loadgen import LoadGenerator, LoadResult


class MockLoadGenerator(LoadGenerator):
    """
    Returns one scripted LoadResult per call.

    An exception in the script is raised instead of returned, which is how
    a missing or failing ``ab`` is simulated.

    Usage:
        gen = MockLoadGenerator([LoadResult(100, 10.0), LoadResult(200, 10.0)])
    """

    def __init__(self, results: Optional[Sequence[Union[LoadResult, Exception]]] = None):
        self.results: List[Union[LoadResult, Exception]] = list(results or [])
        self.calls: List[tuple] = []

    def run(self, url: str, requests: int, concurrency: int) -> LoadResult:
        self.calls.append((url, requests, concurrency))
        if not self.results:
            return LoadResult(requests_per_second=100.0, response_time_ms=10.0)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class UnavailableLoadGenerator(LoadGenerator):
    """Behaves like a host without ApacheBench installed."""

    def __init__(self):
        self.calls = 0

    def run(self, url: str, requests: int, concurrency: int) -> LoadResult:
        self.calls += 1
        raise LoadToolUnavailable("ApacheBench not found: ab")


class MockDatabaseWorkload:
    """Scripted queries-per-second and query times."""

    def __init__(self, qps: Optional[Sequence[int]] = None, query_time_ms: Optional[float] = 12.5):
        self.qps: List[int] = list(qps or [])
        self._query_time_ms = query_time_ms
        self.calls: List[int] = []

    def queries_per_second(self, iterations: int) -> int:
        self.calls.append(iterations)
        if not self.qps:
            return 1000
        return self.qps.pop(0)

    def query_time_ms(self, iterations: int) -> Optional[float]:
        self.calls.append(iterations)
        return self._query_time_ms
