"""
Tests for tuning/generator.py - Hardware profile to tuning profile.
"""

from datetime import datetime, timezone

import pytest

from server_tuning.protocol.errors import ProfileGenerationError
from server_tuning.protocol.hardware import HardwareProfile
from server_tuning.protocol.profile import ServerTier, SUBSYSTEM_ORDER, TuningProfile
from server_tuning.tuning.generator import ProfileGenerator, SETTING_BOUNDS, check_bounds, clamp, classify_tier


FIXED_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def hw(cores, ram, disk=100):
    return HardwareProfile(cpu_cores=cores, total_ram_mb=ram, total_disk_gb=disk)


def test_eight_gb_host_settings():
    """4 cores / 8 GB: ceilings apply where the formula overshoots."""
    profile = ProfileGenerator().generate(hw(4, 8192), "auto")

    assert profile.get("web_server", "max_connections") == 10000
    assert profile.get("web_server", "max_ssl_connections") == 5000
    assert profile.get("web_server", "worker_processes") == 8
    assert profile.get("runtime", "memory_limit_mb") == 512
    assert profile.get("runtime", "opcache_memory_mb") == 256
    assert profile.get("runtime", "max_children") == 100
    assert profile.get("database", "buffer_pool_mb") == 5734
    assert profile.get("database", "max_connections") == 682
    assert profile.get("database", "maintenance_work_mem_mb") == 409
    assert profile.get("cache", "maxmemory_mb") == 1638
    # four cores is not above the large-tier core threshold
    assert profile.server_tier == ServerTier.MEDIUM


def test_same_input_same_settings():
    generator = ProfileGenerator()
    first = generator.generate(hw(2, 3000), "a", generated_at=FIXED_TIME)
    second = generator.generate(hw(2, 3000), "a", generated_at=FIXED_TIME)

    assert first == second
    assert first.settings_json() == second.settings_json()


def test_floors_on_tiny_host():
    profile = ProfileGenerator().generate(hw(1, 100), "tiny")

    assert profile.get("runtime", "memory_limit_mb") == 128
    assert profile.get("runtime", "max_children") == 10
    assert profile.get("web_server", "max_connections") == 500
    assert profile.get("web_server", "worker_processes") == 2
    assert profile.get("database", "buffer_pool_mb") == 256
    assert profile.get("database", "max_connections") == 50
    assert profile.get("cache", "maxmemory_mb") == 64
    # secondary settings derive from the clamped primary
    assert profile.get("runtime", "opcache_memory_mb") == 64


def test_ceilings_on_huge_host():
    profile = ProfileGenerator().generate(hw(64, 100000), "huge")

    assert profile.get("web_server", "max_connections") == 10000
    assert profile.get("web_server", "worker_processes") == 32
    assert profile.get("database", "max_connections") == 1000
    # no ceiling on buffer pool or cache memory
    assert profile.get("database", "buffer_pool_mb") == 70000
    assert profile.get("cache", "maxmemory_mb") == 20000


@pytest.mark.parametrize("cores,ram,tier", [
    (5, 4001, ServerTier.LARGE),
    (5, 4000, ServerTier.MEDIUM),
    (4, 8192, ServerTier.MEDIUM),
    (3, 2001, ServerTier.MEDIUM),
    (2, 8192, ServerTier.SMALL),
    (1, 100, ServerTier.SMALL),
])
def test_tier_boundaries(cores, ram, tier):
    assert classify_tier(hw(cores, ram)) == tier


def test_every_subsystem_has_settings():
    profile = ProfileGenerator().generate(hw(4, 8192), "auto")

    for subsystem in SUBSYSTEM_ORDER:
        assert profile.subsystem_settings(subsystem), subsystem
    assert profile.subsystem_settings("kernel")[0] == ("vm.swappiness", 10)
    assert profile.get("database", "synchronous_commit") is False


def test_bounded_values_stay_in_range_across_hosts():
    generator = ProfileGenerator()
    for cores in (1, 2, 3, 8, 16, 128):
        for ram in (1, 512, 2048, 4096, 16384, 1048576):
            profile = generator.generate(hw(cores, ram), "sweep")
            for (subsystem, key), (floor, ceiling) in SETTING_BOUNDS.items():
                value = profile.get(subsystem, key)
                assert floor is None or value >= floor
                assert ceiling is None or value <= ceiling


def test_check_bounds_rejects_out_of_range_profile():
    good = ProfileGenerator().generate(hw(4, 8192), "auto", generated_at=FIXED_TIME)
    settings = dict(good.settings)
    settings["runtime"] = [
        (key, 4096 if key == "memory_limit_mb" else value) for key, value in settings["runtime"]
    ]
    bad = TuningProfile(
        name="bad",
        generated_at=FIXED_TIME,
        hardware_basis=good.hardware_basis,
        server_tier=good.server_tier,
        settings=settings,
    )

    with pytest.raises(ProfileGenerationError, match="memory_limit_mb"):
        check_bounds(bad)


def test_clamp():
    assert clamp(5, 10, 20) == 10
    assert clamp(25, 10, 20) == 20
    assert clamp(15, 10, 20) == 15
    assert clamp(15) == 15
    assert clamp(300, floor=256) == 300


@pytest.mark.parametrize("kwargs", [
    {"cpu_cores": 0, "total_ram_mb": 1024, "total_disk_gb": 10},
    {"cpu_cores": 2, "total_ram_mb": -1, "total_disk_gb": 10},
    {"cpu_cores": 2, "total_ram_mb": 1024, "total_disk_gb": 0},
    {"cpu_cores": True, "total_ram_mb": 1024, "total_disk_gb": 10},
])
def test_hardware_profile_rejects_implausible_values(kwargs):
    with pytest.raises(ValueError):
        HardwareProfile(**kwargs)


def test_profile_dict_round_trip_keeps_order():
    profile = ProfileGenerator().generate(hw(4, 8192), "auto", generated_at=FIXED_TIME)
    restored = TuningProfile.from_dict(profile.to_dict())

    assert restored == profile
    assert [k for k, _ in restored.subsystem_settings("web_server")][:3] == [
        "max_connections", "max_ssl_connections", "worker_processes",
    ]
