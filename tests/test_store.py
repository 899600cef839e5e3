"""
Tests for store/ - Profiles, active pointer and benchmark log.
"""

import json
import threading
from datetime import datetime, timedelta, timezone

import pytest

from server_tuning.protocol.errors import InvalidProfileName, ProfileInUse, ProfileNotFound
from server_tuning.protocol.result import BenchmarkAverages, BenchmarkResult, RunSample
from server_tuning.store import BenchmarkLog, CurrentProfileState, ProfileStore, atomic_write_text
from server_tuning.tuning.generator import ProfileGenerator


@pytest.fixture
def store(tmp_path):
    state = CurrentProfileState(tmp_path / "current-profile.json")
    return ProfileStore(tmp_path / "profiles", state)


def make_profile(hardware, name, minutes=0):
    generated_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes)
    return ProfileGenerator().generate(hardware, name, generated_at=generated_at)


def test_save_and_load(store, hardware):
    profile = make_profile(hardware, "web-2024")
    path = store.save(profile)

    assert path.name == "web-2024.json"
    assert store.exists("web-2024")
    assert store.load("web-2024") == profile


def test_load_missing_profile(store):
    with pytest.raises(ProfileNotFound, match="ghost"):
        store.load("ghost")


@pytest.mark.parametrize("name", ["", "../etc/passwd", "a/b", ".hidden", "-dash", "with space"])
def test_invalid_profile_names(store, hardware, name):
    with pytest.raises(InvalidProfileName):
        store.exists(name)


def test_list_newest_first(store, hardware):
    store.save(make_profile(hardware, "old", minutes=0))
    store.save(make_profile(hardware, "new", minutes=10))
    store.save(make_profile(hardware, "mid", minutes=5))

    assert [s.name for s in store.list()] == ["new", "mid", "old"]


def test_list_skips_corrupt_records(store, hardware, caplog):
    store.save(make_profile(hardware, "good"))
    (store.profiles_dir / "broken.json").write_text("{not json")

    names = [s.name for s in store.list()]

    assert names == ["good"]
    assert "broken.json" in caplog.text


def test_list_empty_store(store):
    assert store.list() == []


def test_active_pointer(store, hardware):
    assert store.get_active() is None
    store.save(make_profile(hardware, "web-2024"))

    store.set_active("web-2024")

    assert store.get_active() == "web-2024"
    record = json.loads(store.state.path.read_text())
    assert record["profile_name"] == "web-2024"
    assert record["activated_at"].endswith("Z")


def test_set_active_requires_stored_profile(store):
    with pytest.raises(ProfileNotFound):
        store.set_active("ghost")
    assert store.get_active() is None


def test_delete(store, hardware):
    store.save(make_profile(hardware, "web-2024"))
    store.delete("web-2024")

    assert not store.exists("web-2024")
    with pytest.raises(ProfileNotFound):
        store.delete("web-2024")


def test_delete_active_profile_refused(store, hardware):
    store.save(make_profile(hardware, "web-2024"))
    store.set_active("web-2024")

    with pytest.raises(ProfileInUse):
        store.delete("web-2024")
    assert store.exists("web-2024")


def test_corrupt_pointer_reads_as_none(tmp_path):
    path = tmp_path / "current-profile.json"
    path.write_text("garbage")

    assert CurrentProfileState(path).get() is None


def test_concurrent_pointer_writes_leave_valid_record(tmp_path):
    state = CurrentProfileState(tmp_path / "current-profile.json")
    names = [f"profile-{i}" for i in range(20)]
    threads = [threading.Thread(target=state.set, args=(name,)) for name in names]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert state.get() in names


def test_atomic_write_leaves_no_temp_files(tmp_path):
    target = tmp_path / "conf" / "file.conf"
    atomic_write_text(target, "one\n")
    atomic_write_text(target, "two\n")

    assert target.read_text() == "two\n"
    assert [p.name for p in target.parent.iterdir()] == ["file.conf"]


def test_atomic_write_keeps_permissions(tmp_path):
    target = tmp_path / "secret.conf"
    target.write_text("old\n")
    target.chmod(0o640)

    atomic_write_text(target, "new\n")

    assert target.stat().st_mode & 0o777 == 0o640


# =============================================================================
# Benchmark log
# =============================================================================

def make_result(hardware, name, score, date="2024-05-01T12:00:00Z"):
    runs = [RunSample(web_requests_per_second=100.0, web_response_time_ms=10.0, run=1)]
    return BenchmarkResult(
        profile_name=name,
        hardware_basis=hardware,
        benchmark_date=date,
        runs=runs,
        averages=BenchmarkAverages.from_runs(runs),
        performance_score=score,
    )


def test_benchmark_log_append_and_read(tmp_path, hardware):
    log = BenchmarkLog(tmp_path / "benchmarks.jsonl")
    log.append(make_result(hardware, "a", 10))
    log.append(make_result(hardware, "b", 20))
    log.append(make_result(hardware, "a", 30, date="2024-05-02T12:00:00Z"))

    assert len(log.list()) == 3
    assert [r.performance_score for r in log.list("a")] == [10, 30]
    assert log.latest("a").performance_score == 30
    assert log.latest("missing") is None
    assert {n: r.performance_score for n, r in log.latest_per_profile().items()} == {"a": 30, "b": 20}


def test_benchmark_log_skips_corrupt_lines(tmp_path, hardware):
    log = BenchmarkLog(tmp_path / "benchmarks.jsonl")
    log.append(make_result(hardware, "a", 10))
    with open(log.path, "a") as f:
        f.write("{truncated\n\n")
    log.append(make_result(hardware, "a", 11))

    assert [r.performance_score for r in log.list()] == [10, 11]


def test_benchmark_record_round_trip(hardware):
    result = make_result(hardware, "a", 10)
    assert BenchmarkResult.from_dict(json.loads(json.dumps(result.to_dict()))) == result
