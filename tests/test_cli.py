"""
Tests for cli.py - Commands end to end against mocked host collaborators.
"""

import json

import pytest

from server_tuning import cli
from server_tuning.config import ENV_CONFIG, ENV_STATE_DIR
from server_tuning.runner import LoadResult

from conftest import CACHE_CONF


@pytest.fixture
def run_cli(monkeypatch, config, services, load_generator, workload, metrics, hardware, sleeps):
    """Run main() with the test's state dir, subsystem files and mocks."""
    real_build_engine = cli.build_engine

    def build_engine(cfg, **kwargs):
        cfg.subsystems = config.subsystems
        return real_build_engine(
            cfg,
            services=services,
            load_generator=load_generator,
            workload=workload,
            metrics=metrics,
            hardware=lambda: hardware,
            sleep=sleeps.append,
        )

    monkeypatch.setattr(cli, "build_engine", build_engine)
    monkeypatch.setattr("server_tuning.config.CONFIG_SEARCH_PATHS", [])
    monkeypatch.delenv(ENV_CONFIG, raising=False)
    monkeypatch.delenv(ENV_STATE_DIR, raising=False)

    def run(*argv):
        return cli.main(["--state-dir", config.paths.state_dir, *argv])
    return run


def test_generate_and_list(run_cli, config, capsys):
    assert run_cli("generate", "web-2024") == cli.EXIT_OK
    assert (config.paths.profiles_dir / "web-2024.json").exists()

    assert run_cli("list-profiles") == cli.EXIT_OK
    out = capsys.readouterr().out
    assert "web-2024" in out
    assert "medium" in out


def test_generate_rejects_bad_name(run_cli, capsys):
    assert run_cli("generate", "../escape") == cli.EXIT_FAILURE
    assert "Error" in capsys.readouterr().out


def test_apply_then_current_profile(run_cli, config, capsys):
    run_cli("generate", "web-2024")

    assert run_cli("apply", "web-2024") == cli.EXIT_OK
    record = json.loads(config.paths.current_profile_file.read_text())
    assert record["profile_name"] == "web-2024"

    capsys.readouterr()
    assert run_cli("current-profile") == cli.EXIT_OK
    assert "web-2024" in capsys.readouterr().out


def test_dry_run(run_cli, config, host_files):
    run_cli("generate", "web-2024")

    assert run_cli("apply", "web-2024", "--dry-run") == cli.EXIT_OK
    assert host_files["cache"].read_text() == CACHE_CONF
    assert not config.paths.current_profile_file.exists()


def test_partial_apply_exit_code(run_cli, config):
    config.subsystems["cache"].validate_command = "exit 1"
    run_cli("generate", "web-2024")

    assert run_cli("apply", "web-2024") == cli.EXIT_PARTIAL
    assert not config.paths.current_profile_file.exists()


def test_failed_apply_exit_code(run_cli, config, capsys):
    for sub in config.subsystems.values():
        sub.validate_command = "exit 1"
    run_cli("generate", "web-2024")

    assert run_cli("apply", "web-2024") == cli.EXIT_FAILURE
    assert "failed for every subsystem" in capsys.readouterr().out


def test_apply_unknown_profile(run_cli):
    assert run_cli("apply", "ghost") == cli.EXIT_FAILURE


def test_revert(run_cli, host_files):
    run_cli("generate", "web-2024")
    run_cli("apply", "web-2024")

    assert run_cli("revert") == cli.EXIT_OK
    assert host_files["cache"].read_text() == CACHE_CONF


def test_revert_without_backup(run_cli):
    assert run_cli("revert") == cli.EXIT_FAILURE


def test_benchmark_and_compare(run_cli, load_generator, capsys):
    run_cli("generate", "fast")
    run_cli("generate", "slow")
    load_generator.results = [LoadResult(500.0, 5.0)] * 3 + [LoadResult(100.0, 20.0)] * 3

    assert run_cli("benchmark", "fast") == cli.EXIT_OK
    assert run_cli("benchmark", "slow") == cli.EXIT_OK
    capsys.readouterr()

    assert run_cli("compare") == cli.EXIT_OK
    out = capsys.readouterr().out
    assert out.index("fast") < out.index("slow")


def test_benchmark_round_count(run_cli, load_generator):
    run_cli("generate", "web-2024")
    assert run_cli("benchmark", "web-2024", "2") == cli.EXIT_OK
    assert len(load_generator.calls) == 2


def test_benchmark_unknown_profile(run_cli):
    assert run_cli("benchmark", "ghost") == cli.EXIT_FAILURE


def test_show_and_delete(run_cli, config, capsys):
    run_cli("generate", "web-2024")
    capsys.readouterr()

    assert run_cli("show-profile", "web-2024") == cli.EXIT_OK
    assert "maxmemory_mb" in capsys.readouterr().out

    assert run_cli("delete-profile", "web-2024") == cli.EXIT_OK
    assert not (config.paths.profiles_dir / "web-2024.json").exists()
    assert run_cli("delete-profile", "web-2024") == cli.EXIT_FAILURE


def test_delete_active_profile_refused(run_cli):
    run_cli("generate", "web-2024")
    run_cli("apply", "web-2024")

    assert run_cli("delete-profile", "web-2024") == cli.EXIT_FAILURE


def test_analyze_writes_snapshot(run_cli, config):
    assert run_cli("analyze") == cli.EXIT_OK

    data = json.loads(config.paths.analysis_file.read_text())
    assert data["cpu_idle_percent"] == 75.0
    assert data["network_connections"] == 12


def test_monitor_once(run_cli, metrics, capsys):
    metrics.cpu = 95.0

    assert run_cli("monitor", "--once") == cli.EXIT_OK
    assert "cpu_percent" in capsys.readouterr().out


def test_logs_written_to_state_dir(run_cli, config):
    run_cli("generate", "web-2024")

    log = config.paths.logs_dir / "tuning.log"
    assert log.exists()
    assert "Generated profile web-2024" in log.read_text()


def test_config_file_option(run_cli, load_generator, tmp_path):
    path = tmp_path / "tuning.toml"
    path.write_text("[benchmark]\nrounds = 4\n")
    run_cli("generate", "web-2024")

    assert run_cli("--config", str(path), "benchmark", "web-2024") == cli.EXIT_OK
    assert len(load_generator.calls) == 4


def test_invalid_config_file(run_cli, tmp_path, capsys):
    path = tmp_path / "broken.toml"
    path.write_text("[benchmark\n")

    assert run_cli("--config", str(path), "list-profiles") == cli.EXIT_FAILURE
    assert "Invalid TOML" in capsys.readouterr().out


def test_invalid_config_values(run_cli, tmp_path):
    path = tmp_path / "bad.toml"
    path.write_text("[benchmark]\nrounds = 0\n")

    assert run_cli("--config", str(path), "list-profiles") == cli.EXIT_FAILURE


def test_interrupt_exit_code(run_cli, monkeypatch):
    def interrupted(engine, ui, args):
        raise KeyboardInterrupt

    monkeypatch.setitem(cli.COMMANDS, "list-profiles", interrupted)
    assert run_cli("list-profiles") == cli.EXIT_INTERRUPTED
