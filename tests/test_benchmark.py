"""
Tests for runner/ - Benchmark rounds, averages, score and ab parsing.
"""

import pytest

from server_tuning.protocol.errors import LoadToolUnavailable, ProfileNotFound
from server_tuning.protocol.result import BenchmarkAverages, performance_score
from server_tuning.runner import ApacheBench, LoadResult
from mocks import MockLoadGenerator, UnavailableLoadGenerator, MockDatabaseWorkload


AB_OUTPUT = """\
Server Software:        LiteSpeed
Server Hostname:        localhost
Server Port:            80

Concurrency Level:      10
Time taken for tests:   0.810 seconds
Complete requests:      1000
Failed requests:        3
Total transferred:      1234000 bytes
Requests per second:    1234.56 [#/sec] (mean)
Time per request:       8.100 [ms] (mean)
Time per request:       0.810 [ms] (mean, across all concurrent requests)
"""


@pytest.fixture
def stored(engine, profile):
    engine.store.save(profile)
    return profile


def test_averages_over_rounds(engine, stored, load_generator):
    load_generator.results = [
        LoadResult(100.0, 10.0),
        LoadResult(200.0, 20.0),
        LoadResult(300.0, 30.0),
    ]
    engine.runner.workload = MockDatabaseWorkload(qps=[600, 900, 1200])

    result = engine.runner.run("web-2024")

    assert [r.run for r in result.runs] == [1, 2, 3]
    assert result.averages.web_requests_per_second == 200.0
    assert result.averages.web_response_time_ms == 20.0
    assert result.averages.database_queries_per_second == 900.0
    # (200 + 900) / 20
    assert result.performance_score == 55


def test_settle_then_pause_between_rounds(engine, stored, sleeps):
    engine.runner.run("web-2024")
    assert sleeps == [30, 10, 10]

    sleeps.clear()
    engine.runner.run("web-2024", rounds=1)
    assert sleeps == [30]


def test_rounds_run_sequentially_with_configured_parameters(engine, stored, load_generator):
    engine.runner.run("web-2024", rounds=2)

    assert load_generator.calls == [("http://localhost/", 1000, 10)] * 2


def test_missing_load_tool_records_zeros(engine, stored):
    engine.runner.load_generator = UnavailableLoadGenerator()

    result = engine.runner.run("web-2024")

    assert all(r.web_requests_per_second == 0 for r in result.runs)
    assert result.averages.web_response_time_ms == 0
    assert result.averages.database_queries_per_second == 1000
    assert result.performance_score == 0


def test_one_failing_round_only_zeroes_that_round(engine, stored, load_generator):
    load_generator.results = [
        LoadResult(100.0, 10.0),
        LoadToolUnavailable("ab exited with 1"),
        LoadResult(200.0, 10.0),
    ]

    result = engine.runner.run("web-2024")

    assert [r.web_requests_per_second for r in result.runs] == [100.0, 0.0, 200.0]
    assert result.averages.web_requests_per_second == 100.0


def test_result_appended_to_log(engine, stored, hardware):
    result = engine.runner.run("web-2024")

    logged = engine.benchmarks.latest("web-2024")
    assert logged == result
    assert logged.hardware_basis == hardware
    assert logged.benchmark_date.endswith("Z")
    assert logged.parameters.rounds == 3


def test_benchmark_does_not_touch_active_profile(engine, stored):
    engine.runner.run("web-2024", rounds=1)
    assert engine.store.get_active() is None


def test_unknown_profile(engine, sleeps):
    with pytest.raises(ProfileNotFound):
        engine.runner.run("ghost")
    assert sleeps == []


def test_rounds_must_be_positive(engine, stored):
    with pytest.raises(ValueError):
        engine.runner.run("web-2024", rounds=0)


# =============================================================================
# Score
# =============================================================================

def test_score_floors():
    averages = BenchmarkAverages(
        web_requests_per_second=1000.0,
        web_response_time_ms=3.0,
        database_queries_per_second=500.0,
    )
    assert performance_score(averages) == 500


def test_score_zero_without_response_time():
    averages = BenchmarkAverages(web_requests_per_second=0.0, web_response_time_ms=0.0,
                                 database_queries_per_second=5000.0)
    assert performance_score(averages) == 0


# =============================================================================
# ApacheBench adapter
# =============================================================================

def test_parse_ab_output():
    result = ApacheBench.parse_output(AB_OUTPUT)

    assert result.requests_per_second == 1234.56
    assert result.response_time_ms == 8.1
    assert result.failed_requests == 3


def test_parse_ab_garbage():
    with pytest.raises(LoadToolUnavailable):
        ApacheBench.parse_output("apr_socket_recv: Connection refused (111)")


def test_missing_ab_binary(tmp_path):
    ab = ApacheBench(ab_path=str(tmp_path / "no-such-ab"))
    with pytest.raises(LoadToolUnavailable, match="not found"):
        ab.run("http://localhost/", 10, 1)
