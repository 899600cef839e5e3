"""Pytest configuration for server_tuning tests.

Every test works inside tmp_path: subsystem config files, the state
directory and the apply lock all live there. Service control, load
generation, the database workload and host metrics are mocks.
"""

import logging
import sys
from dataclasses import replace
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from server_tuning.cli import build_engine
from server_tuning.config import Config
from server_tuning.logs import MONITOR_LOGGER
from server_tuning.protocol.hardware import HardwareProfile
from server_tuning.tuning.generator import ProfileGenerator
from mocks import MockServiceController, MockLoadGenerator, MockDatabaseWorkload, MockMetricsSource


WEB_SERVER_CONF = """\
serverName                lsws
user                      nobody
group                     nogroup
httpdWorkers              1

tuning  {
  maxConnections          2000
  maxSSLConnections       1000
  keepAliveTimeout        5
  enableGzipCompress      1
}
"""

RUNTIME_CONF = """\
[www]
user = www-data
group = www-data
listen = /run/php/php8.2-fpm.sock
pm = dynamic
pm.max_children = 5
;pm.max_requests = 500
"""

CACHE_CONF = """\
bind 127.0.0.1 -::1
port 6379
# maxmemory <bytes>
maxmemory-policy noeviction
timeout 0
"""


@pytest.fixture
def hardware():
    """A 4-core, 8 GB host."""
    return HardwareProfile(cpu_cores=4, total_ram_mb=8192, total_disk_gb=100, network_interface="eth0")


@pytest.fixture
def profile(hardware):
    return ProfileGenerator().generate(hardware, "web-2024")


@pytest.fixture
def host_files(tmp_path):
    """Subsystem config files as found on a fresh host."""
    etc = tmp_path / "etc"
    etc.mkdir()
    files = {
        "web_server": etc / "httpd_config.conf",
        "runtime": etc / "www.conf",
        "database": etc / "99-dynamic-tuning.conf",
        "cache": etc / "redis.conf",
        "kernel": etc / "99-sysctl-tuning.conf",
    }
    files["web_server"].write_text(WEB_SERVER_CONF)
    files["runtime"].write_text(RUNTIME_CONF)
    files["cache"].write_text(CACHE_CONF)
    return files


@pytest.fixture
def config(tmp_path, host_files):
    """Config pointing every subsystem at tmp_path, without syntax checks."""
    config = Config()
    config.paths.state_dir = str(tmp_path / "state")
    config.apply.stabilization_seconds = 10
    config.benchmark.settle_seconds = 30
    config.benchmark.round_pause = 10
    for name, path in host_files.items():
        config.subsystems[name] = replace(
            config.subsystems[name],
            config_path=str(path),
            validate_command=None,
        )
    return config


@pytest.fixture
def services():
    return MockServiceController()


@pytest.fixture
def metrics():
    return MockMetricsSource()


@pytest.fixture
def load_generator():
    return MockLoadGenerator()


@pytest.fixture
def workload():
    return MockDatabaseWorkload()


@pytest.fixture
def sleeps():
    """Records every requested sleep instead of sleeping."""
    return []


@pytest.fixture
def engine(config, services, load_generator, workload, metrics, hardware, sleeps):
    return build_engine(
        config,
        services=services,
        load_generator=load_generator,
        workload=workload,
        metrics=metrics,
        hardware=lambda: hardware,
        sleep=sleeps.append,
    )


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging() calls made by CLI tests."""
    yield
    for name in ("server_tuning", MONITOR_LOGGER):
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)
