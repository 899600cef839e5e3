"""
ConsoleUI - Rich-based console output for the CLI.

Provides result formatting for profiles, apply reports, benchmarks,
comparisons and performance snapshots.
"""

from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..protocol.profile import SUBSYSTEM_ORDER, TuningProfile, ProfileSummary
from ..protocol.result import BenchmarkResult, PerformanceSnapshot
from ..protocol.tuning import ApplyReport, SubsystemStatus

STATUS_STYLES = {
    SubsystemStatus.SUCCEEDED: "green",
    SubsystemStatus.FAILED: "bold red",
    SubsystemStatus.SKIPPED: "dim",
}

TIER_STYLES = {
    "small": "yellow",
    "medium": "cyan",
    "large": "green",
}


class ConsoleUI:
    """
    Rich console interface for server-tuning.
    """

    def __init__(self, quiet: bool = False, console: Optional[Console] = None):
        self.quiet = quiet
        self.console = console or Console()

    def print(self, *args, **kwargs):
        """Print to console."""
        if self.quiet:
            return
        self.console.print(*args, **kwargs)

    def print_error(self, message: str, exception: Optional[Exception] = None):
        """Display error message (never suppressed by quiet)."""
        self.console.print(f"[bold red]Error:[/] {message}")
        if exception:
            self.console.print(f"[dim]{type(exception).__name__}: {exception}[/]")

    def print_warning(self, message: str):
        if self.quiet:
            return
        self.console.print(f"[yellow]Warning:[/] {message}")

    def print_success(self, message: str):
        if self.quiet:
            return
        self.console.print(f"[bold green]✓[/] {message}")

    # =========================================================================
    # Profiles
    # =========================================================================

    def print_profile(self, profile: TuningProfile):
        """Display a profile with all its settings."""
        if self.quiet:
            return

        tier = profile.server_tier.value
        self.console.print(Panel(
            f"[bold]{profile.name}[/]  [{TIER_STYLES.get(tier, 'white')}]{tier}[/]\n"
            f"[dim]Generated {profile.generated_at.isoformat()} for "
            f"{profile.hardware_basis.describe()}[/]",
            border_style="cyan",
        ))

        table = Table(box=None)
        table.add_column("Subsystem", style="dim")
        table.add_column("Setting")
        table.add_column("Value", justify="right")
        for subsystem in SUBSYSTEM_ORDER:
            for key, value in profile.subsystem_settings(subsystem):
                table.add_row(subsystem, key, str(value))
                subsystem = ""
        self.console.print(table)

    def print_profile_list(self, summaries: List[ProfileSummary], active: Optional[str] = None):
        if self.quiet:
            return
        if not summaries:
            self.console.print("[dim]No tuning profiles stored.[/]")
            return

        table = Table(title="Tuning Profiles")
        table.add_column("", width=1)
        table.add_column("Name")
        table.add_column("Tier")
        table.add_column("Generated", style="dim")
        for summary in summaries:
            tier = summary.server_tier.value
            table.add_row(
                "*" if summary.name == active else "",
                f"[bold]{summary.name}[/]" if summary.name == active else summary.name,
                f"[{TIER_STYLES.get(tier, 'white')}]{tier}[/]",
                summary.generated_at.strftime("%Y-%m-%d %H:%M:%S"),
            )
        self.console.print(table)

    # =========================================================================
    # Apply
    # =========================================================================

    def print_apply_report(self, report: ApplyReport):
        """Per-subsystem status table for an apply or revert run."""
        if self.quiet:
            return

        title = f"{'Dry run' if report.dry_run else 'Apply'}: {report.profile_name}"
        table = Table(title=title)
        table.add_column("Subsystem")
        table.add_column("Status")
        table.add_column("Changes", justify="right")
        table.add_column("Reloaded")
        table.add_column("Details", overflow="fold")

        for outcome in report.outcomes:
            style = STATUS_STYLES[outcome.status]
            status = outcome.status.value
            if outcome.rolled_back and outcome.failed:
                status += " (rolled back)"
            details = outcome.error or ", ".join(
                f"{c.key}: {c.previous if c.previous is not None else '-'} -> {c.applied}"
                for c in outcome.changes
            )
            table.add_row(
                outcome.subsystem,
                f"[{style}]{status}[/]",
                str(len(outcome.changes)),
                "yes" if outcome.reloaded else "-",
                details or "[dim]no changes[/]",
            )
        self.console.print(table)

        if report.backup_dir:
            self.console.print(f"[dim]Backup: {report.backup_dir}[/]")

    # =========================================================================
    # Benchmarks
    # =========================================================================

    def print_benchmark_result(self, result: BenchmarkResult):
        if self.quiet:
            return

        table = Table(title=f"Benchmark: {result.profile_name}")
        table.add_column("Round", justify="right")
        table.add_column("Req/s", justify="right")
        table.add_column("Resp (ms)", justify="right")
        table.add_column("DB q/s", justify="right")
        table.add_column("CPU %", justify="right")
        table.add_column("Mem %", justify="right")
        table.add_column("Load", justify="right")
        for run in result.runs:
            table.add_row(
                str(run.run),
                f"{run.web_requests_per_second:.2f}",
                f"{run.web_response_time_ms:.2f}",
                f"{run.database_queries_per_second:.0f}",
                f"{run.cpu_usage_percent:.1f}",
                f"{run.memory_usage_percent:.1f}",
                f"{run.load_average:.2f}",
            )
        avg = result.averages
        table.add_row(
            "[bold]avg[/]",
            f"[bold]{avg.web_requests_per_second:.2f}[/]",
            f"[bold]{avg.web_response_time_ms:.2f}[/]",
            f"[bold]{avg.database_queries_per_second:.0f}[/]",
            "", "", "",
        )
        self.console.print(table)
        self.console.print(f"Performance score: [bold cyan]{result.performance_score}[/]")

    def print_comparison(self, results: List[BenchmarkResult], active: Optional[str] = None):
        """Latest benchmark per profile, best score first."""
        if self.quiet:
            return
        if not results:
            self.console.print("[dim]No benchmark results recorded.[/]")
            return

        table = Table(title="Profile Comparison")
        table.add_column("Profile")
        table.add_column("Score", justify="right")
        table.add_column("Req/s", justify="right")
        table.add_column("Resp (ms)", justify="right")
        table.add_column("DB q/s", justify="right")
        table.add_column("Date", style="dim")
        for i, result in enumerate(results):
            name = result.profile_name + (" *" if result.profile_name == active else "")
            score_style = "bold green" if i == 0 else "white"
            table.add_row(
                name,
                f"[{score_style}]{result.performance_score}[/]",
                f"{result.averages.web_requests_per_second:.2f}",
                f"{result.averages.web_response_time_ms:.2f}",
                f"{result.averages.database_queries_per_second:.0f}",
                result.benchmark_date,
            )
        self.console.print(table)

    # =========================================================================
    # Analysis
    # =========================================================================

    def print_snapshot(self, snapshot: PerformanceSnapshot):
        if self.quiet:
            return

        def fmt_ms(value: Optional[float]) -> str:
            return f"{value:.1f} ms" if value is not None else "[red]unreachable[/]"

        rows: Dict[str, str] = {
            "Host": snapshot.hostname,
            "Hardware": snapshot.hardware.describe(),
            "Active profile": snapshot.current_profile or "[dim]none[/]",
            "CPU idle": f"{snapshot.cpu_idle_percent:.1f}%",
            "Memory free": f"{snapshot.memory_free_percent:.1f}%",
            "Load (1 min)": f"{snapshot.load_average_1min:.2f}",
            "Disk used": f"{snapshot.disk_used_percent:.1f}%",
            "TCP connections": str(snapshot.network_connections),
            "Web response": fmt_ms(snapshot.web_response_time_ms),
            "DB query": fmt_ms(snapshot.db_query_time_ms),
        }
        table = Table(title=f"Performance Analysis ({snapshot.timestamp})", show_header=False, box=None)
        table.add_column("Key", style="dim")
        table.add_column("Value")
        for key, value in rows.items():
            table.add_row(key, value)
        self.console.print(table)
