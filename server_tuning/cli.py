"""
CLI - Command-line interface for server-tuning.

Generates hardware-derived tuning profiles, applies them to the managed
subsystems, benchmarks them and watches the host for threshold breaches.
"""

import argparse
import logging
import sys
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .config import Config
from .discovery import HardwareProfiler
from .logs import configure_logging
from .protocol.errors import ApplyFailed, ConfigError, TuningError
from .protocol.hardware import HardwareProfile
from .protocol.tuning import ApplyReport
from .runner import ApacheBench, BenchmarkRunner, DatabaseWorkload, LoadGenerator, RunnerConfig
from .store import BenchmarkLog, CurrentProfileState, ProfileStore
from .telemetry import ContinuousMonitor, MetricsSource, PerformanceAnalyzer, SystemMetricsSource, Thresholds
from .tuning import (
    ApplierConfig,
    BackupManager,
    ProfileApplier,
    ProfileGenerator,
    ServiceController,
    build_surfaces,
)
from .ui import ConsoleUI

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PARTIAL = 3
EXIT_INTERRUPTED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="server-tuning",
        description="Hardware-aware tuning for web, PHP, database, cache and kernel settings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    server-tuning generate web-2024
    server-tuning apply web-2024 --dry-run
    server-tuning apply web-2024
    server-tuning benchmark web-2024 5
    server-tuning compare
    server-tuning monitor --interval 60

Environment Variables:
    SERVER_TUNING_CONFIG      Config file path
    SERVER_TUNING_STATE_DIR   State directory (default: /usr/local/tuning)
    PGPASSWORD                PostgreSQL password for the benchmark workload
        """,
    )

    parser.add_argument("-c", "--config", help="Config file (TOML)")
    parser.add_argument("--state-dir", help="State directory for profiles, backups and logs")
    parser.add_argument("--url", help="Local endpoint used for benchmarks and monitoring")
    parser.add_argument("--db-host", help="PostgreSQL host for the benchmark workload")
    parser.add_argument("--db-port", type=int, help="PostgreSQL port")
    parser.add_argument("--db-user", help="PostgreSQL user")
    parser.add_argument("--db-name", help="PostgreSQL database")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print errors")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    p = sub.add_parser("generate", help="Detect hardware and store a new profile")
    p.add_argument("name", help="Profile name")

    p = sub.add_parser("apply", help="Apply a stored profile")
    p.add_argument("name", help="Profile name")
    p.add_argument("--dry-run", action="store_true", help="Show the changes without applying them")

    p = sub.add_parser("benchmark", help="Benchmark the host under a profile")
    p.add_argument("name", help="Profile name")
    p.add_argument("rounds", nargs="?", type=int, help="Number of rounds (default: 3)")

    sub.add_parser("list-profiles", help="List stored profiles")
    sub.add_parser("current-profile", help="Show the active profile")

    p = sub.add_parser("monitor", help="Watch CPU, memory and response time")
    p.add_argument("--interval", type=float, help="Seconds between checks (default: 300)")
    p.add_argument("--once", action="store_true", help="Run a single check and exit")

    p = sub.add_parser("show-profile", help="Show a stored profile's settings")
    p.add_argument("name", help="Profile name")

    p = sub.add_parser("delete-profile", help="Delete a stored profile")
    p.add_argument("name", help="Profile name")

    sub.add_parser("analyze", help="Snapshot current system performance")

    p = sub.add_parser("revert", help="Restore config files from a backup set")
    p.add_argument("--backup", metavar="NAME", help="Backup set name (default: most recent)")

    p = sub.add_parser("compare", help="Compare the latest benchmark of each profile")
    p.add_argument("names", nargs="*", help="Profiles to compare (default: all)")

    return parser.parse_args(argv)


@dataclass
class Engine:
    """Components wired from configuration."""
    config: Config
    state: CurrentProfileState
    store: ProfileStore
    hardware: Callable[[], HardwareProfile]
    generator: ProfileGenerator
    applier: ProfileApplier
    runner: BenchmarkRunner
    benchmarks: BenchmarkLog
    metrics: MetricsSource
    workload: DatabaseWorkload

    def monitor(self) -> ContinuousMonitor:
        mon = self.config.monitor
        return ContinuousMonitor(
            state=self.state,
            url=mon.url,
            metrics=self.metrics,
            thresholds=Thresholds(mon.cpu_percent, mon.memory_percent, mon.response_time_ms),
            interval=mon.interval,
        )

    def analyzer(self) -> PerformanceAnalyzer:
        return PerformanceAnalyzer(
            hardware=self.hardware,
            metrics=self.metrics,
            workload=self.workload,
            state=self.state,
            output_path=self.config.paths.analysis_file,
            url=self.config.monitor.url,
            db_iterations=self.config.benchmark.db_iterations,
        )


def build_engine(
    config: Config,
    services: Optional[ServiceController] = None,
    load_generator: Optional[LoadGenerator] = None,
    workload: Optional[DatabaseWorkload] = None,
    metrics: Optional[MetricsSource] = None,
    hardware: Optional[Callable[[], HardwareProfile]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Engine:
    """Wire every component from configuration (collaborators may be injected)."""
    paths = config.paths
    state = CurrentProfileState(paths.current_profile_file)
    store = ProfileStore(paths.profiles_dir, state)
    detect = hardware or HardwareProfiler().detect
    benchmarks = BenchmarkLog(paths.benchmarks_file)
    workload = workload or DatabaseWorkload(config.database)
    metrics = metrics or SystemMetricsSource(request_timeout=config.monitor.request_timeout)

    applier = ProfileApplier(
        store=store,
        surfaces=build_surfaces(config.subsystems),
        subsystems=config.subsystems,
        backup_manager=BackupManager(paths.backups_dir),
        lock_path=paths.lock_file,
        service_controller=services or ServiceController(),
        config=ApplierConfig(
            stabilization_seconds=config.apply.stabilization_seconds,
            keep_backups=config.apply.keep_backups,
        ),
        sleep=sleep,
    )

    bench = config.benchmark
    runner = BenchmarkRunner(
        store=store,
        log=benchmarks,
        hardware=detect,
        load_generator=load_generator or ApacheBench(bench.ab_path, bench.timeout),
        workload=workload,
        metrics=metrics,
        config=RunnerConfig(
            url=bench.url,
            rounds=bench.rounds,
            requests=bench.requests,
            concurrency=bench.concurrency,
            round_pause=bench.round_pause,
            settle_seconds=bench.settle_seconds,
            db_iterations=bench.db_iterations,
        ),
        sleep=sleep,
    )

    return Engine(
        config=config,
        state=state,
        store=store,
        hardware=detect,
        generator=ProfileGenerator(),
        applier=applier,
        runner=runner,
        benchmarks=benchmarks,
        metrics=metrics,
        workload=workload,
    )


# =============================================================================
# Commands
# =============================================================================

def cmd_generate(engine: Engine, ui: ConsoleUI, args) -> int:
    hardware = engine.hardware()
    profile = engine.generator.generate(hardware, args.name)
    if engine.store.exists(args.name):
        logger.warning("Replacing existing profile %s", args.name)
    engine.store.save(profile)
    ui.print_profile(profile)
    ui.print_success(f"Profile {profile.name} generated ({profile.server_tier.value} tier)")
    return EXIT_OK


def _apply_exit_code(report: ApplyReport) -> int:
    return EXIT_PARTIAL if report.failed else EXIT_OK


def cmd_apply(engine: Engine, ui: ConsoleUI, args) -> int:
    profile = engine.store.load(args.name)
    try:
        report = engine.applier.apply(profile, dry_run=args.dry_run)
    except ApplyFailed as e:
        if e.report is not None:
            ui.print_apply_report(e.report)
        ui.print_error(str(e))
        return EXIT_FAILURE

    ui.print_apply_report(report)
    if report.dry_run:
        ui.print(f"[dim]Dry run: {report.total_changes} change(s) would be made[/]")
        return EXIT_OK
    if report.failed:
        ui.print_warning(
            f"Partial success: {', '.join(report.failed)} failed; active profile unchanged"
        )
    else:
        ui.print_success(f"Profile {profile.name} is now active")
    return _apply_exit_code(report)


def cmd_benchmark(engine: Engine, ui: ConsoleUI, args) -> int:
    result = engine.runner.run(args.name, rounds=args.rounds)
    ui.print_benchmark_result(result)
    return EXIT_OK


def cmd_list_profiles(engine: Engine, ui: ConsoleUI, args) -> int:
    ui.print_profile_list(engine.store.list(), active=engine.store.get_active())
    return EXIT_OK


def cmd_current_profile(engine: Engine, ui: ConsoleUI, args) -> int:
    active = engine.store.get_active()
    if not active:
        ui.print("No profile is active")
        return EXIT_OK
    ui.print(f"Active profile: [bold]{active}[/]")
    if engine.store.exists(active):
        ui.print_profile(engine.store.load(active))
    else:
        ui.print_warning(f"Active profile {active} is no longer stored")
    return EXIT_OK


def cmd_monitor(engine: Engine, ui: ConsoleUI, args) -> int:
    monitor = engine.monitor()
    if args.once:
        breaches = monitor.check()
        for breach in breaches:
            ui.print_warning(breach.message())
        if not breaches:
            ui.print_success("All metrics within thresholds")
        return EXIT_OK

    handle = monitor.start(args.interval)
    ui.print(f"Monitoring every {args.interval or monitor.interval:g}s (Ctrl+C to stop)")
    try:
        while handle.running:
            handle.join(timeout=1.0)
    except KeyboardInterrupt:
        handle.cancel()
        handle.join(timeout=5.0)
        raise
    return EXIT_OK


def cmd_show_profile(engine: Engine, ui: ConsoleUI, args) -> int:
    ui.print_profile(engine.store.load(args.name))
    return EXIT_OK


def cmd_delete_profile(engine: Engine, ui: ConsoleUI, args) -> int:
    engine.store.delete(args.name)
    ui.print_success(f"Profile {args.name} deleted")
    return EXIT_OK


def cmd_analyze(engine: Engine, ui: ConsoleUI, args) -> int:
    snapshot = engine.analyzer().analyze()
    ui.print_snapshot(snapshot)
    return EXIT_OK


def cmd_revert(engine: Engine, ui: ConsoleUI, args) -> int:
    try:
        report = engine.applier.revert(args.backup)
    except ApplyFailed as e:
        if e.report is not None:
            ui.print_apply_report(e.report)
        ui.print_error(str(e))
        return EXIT_FAILURE
    ui.print_apply_report(report)
    if not report.failed:
        ui.print_success(f"Restored configuration from {report.backup_dir}")
    return _apply_exit_code(report)


def cmd_compare(engine: Engine, ui: ConsoleUI, args) -> int:
    latest = engine.benchmarks.latest_per_profile()
    if args.names:
        missing = [n for n in args.names if n not in latest]
        for name in missing:
            ui.print_warning(f"No benchmark recorded for {name}")
        latest = {n: r for n, r in latest.items() if n in args.names}
    results = sorted(latest.values(), key=lambda r: r.performance_score, reverse=True)
    ui.print_comparison(results, active=engine.store.get_active())
    return EXIT_OK


COMMANDS: Dict[str, Callable[[Engine, ConsoleUI, argparse.Namespace], int]] = {
    "generate": cmd_generate,
    "apply": cmd_apply,
    "benchmark": cmd_benchmark,
    "list-profiles": cmd_list_profiles,
    "current-profile": cmd_current_profile,
    "monitor": cmd_monitor,
    "show-profile": cmd_show_profile,
    "delete-profile": cmd_delete_profile,
    "analyze": cmd_analyze,
    "revert": cmd_revert,
    "compare": cmd_compare,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    ui = ConsoleUI(quiet=args.quiet)

    try:
        config = Config.load(args.config).override_from_args(args)
    except ConfigError as e:
        ui.print_error(str(e))
        return EXIT_FAILURE

    errors = config.validate()
    if errors:
        for error in errors:
            ui.print_error(error)
        return EXIT_FAILURE

    configure_logging(
        level=config.output.log_level,
        logs_dir=config.paths.logs_dir,
        quiet=config.output.quiet,
    )
    logger.debug("Configuration:\n%s", config.summary())

    try:
        engine = build_engine(config)
        return COMMANDS[args.command](engine, ui, args)
    except KeyboardInterrupt:
        ui.print("\n[dim]Interrupted[/]")
        return EXIT_INTERRUPTED
    except TuningError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        ui.print_error(str(e))
        return EXIT_FAILURE
    except ValueError as e:
        ui.print_error(str(e))
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
