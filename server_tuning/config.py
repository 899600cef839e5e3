"""
Configuration management for server-tuning.

Supports:
- TOML config files
- Environment variables
- Command-line overrides
- Sensible defaults

Priority (highest to lowest):
1. Command-line arguments
2. Environment variables
3. Config file
4. Defaults
"""

import os
from pathlib import Path
from dataclasses import dataclass, field, fields
from typing import Optional, Dict, Any, List

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Older Python

from .protocol.errors import ConfigError
from .protocol.profile import SUBSYSTEM_ORDER


ENV_CONFIG = "SERVER_TUNING_CONFIG"
ENV_STATE_DIR = "SERVER_TUNING_STATE_DIR"

# Default config file locations (searched in order)
CONFIG_SEARCH_PATHS = [
    Path("/etc/server-tuning/config.toml"),
    Path.home() / ".config" / "server-tuning" / "config.toml",
    Path.cwd() / "server-tuning.toml",
]

SERVICE_ACTIONS = ("restart", "reload")


@dataclass
class PathsConfig:
    """Where profiles, backups, benchmarks and logs live."""
    state_dir: str = "/usr/local/tuning"

    @property
    def root(self) -> Path:
        return Path(self.state_dir)

    @property
    def profiles_dir(self) -> Path:
        return self.root / "profiles"

    @property
    def backups_dir(self) -> Path:
        return self.root / "backups"

    @property
    def logs_dir(self) -> Path:
        return self.root / "logs"

    @property
    def current_profile_file(self) -> Path:
        return self.root / "current-profile.json"

    @property
    def benchmarks_file(self) -> Path:
        return self.root / "benchmarks.jsonl"

    @property
    def analysis_file(self) -> Path:
        return self.root / "current-performance.json"

    @property
    def lock_file(self) -> Path:
        return self.root / "apply.lock"


@dataclass
class SubsystemConfig:
    """How one managed subsystem is reached on this host."""
    name: str
    config_path: str
    enabled: bool = True
    service: Optional[str] = None
    action: str = "restart"                 # restart | reload
    validate_command: Optional[str] = None  # "{path}" is substituted
    reload_command: Optional[str] = None    # used instead of the service
    create_if_missing: bool = False


def default_subsystems() -> Dict[str, SubsystemConfig]:
    return {
        "web_server": SubsystemConfig(
            name="web_server",
            config_path="/usr/local/lsws/conf/httpd_config.conf",
            service="lsws",
            action="restart",
            validate_command="/usr/local/lsws/bin/openlitespeed -t",
        ),
        "runtime": SubsystemConfig(
            name="runtime",
            config_path="/etc/php/8.2/fpm/pool.d/www.conf",
            service="php8.2-fpm",
            action="reload",
            validate_command="php-fpm8.2 -t",
        ),
        "database": SubsystemConfig(
            name="database",
            config_path="/etc/postgresql/16/main/conf.d/99-dynamic-tuning.conf",
            service="postgresql",
            action="restart",
            create_if_missing=True,
        ),
        "cache": SubsystemConfig(
            name="cache",
            config_path="/etc/redis/redis.conf",
            service="redis-server",
            action="restart",
        ),
        "kernel": SubsystemConfig(
            name="kernel",
            config_path="/etc/sysctl.d/99-dynamic-tuning.conf",
            reload_command="sysctl -p {path}",
            create_if_missing=True,
        ),
    }


@dataclass
class ApplyConfig:
    """Apply run configuration."""
    stabilization_seconds: float = 10.0
    keep_backups: int = 20


@dataclass
class BenchmarkConfig:
    """Benchmark configuration."""
    url: str = "http://localhost/"
    rounds: int = 3
    requests: int = 1000
    concurrency: int = 10
    round_pause: float = 10.0
    settle_seconds: float = 30.0
    db_iterations: int = 10000
    ab_path: str = "ab"
    timeout: int = 300


@dataclass
class DatabaseConfig:
    """Database connection used by the benchmark workload."""
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = ""
    name: str = "postgres"
    connect_timeout: int = 10

    def __post_init__(self):
        if not self.password:
            self.password = os.environ.get("PGPASSWORD", "")


@dataclass
class MonitorConfig:
    """Continuous monitor configuration."""
    interval: float = 300.0
    url: str = "http://localhost/"
    cpu_percent: float = 80.0
    memory_percent: float = 85.0
    response_time_ms: float = 5000.0
    request_timeout: float = 30.0


@dataclass
class OutputConfig:
    """Output configuration."""
    verbose: bool = False
    quiet: bool = False
    log_level: str = "INFO"


@dataclass
class Config:
    """Main configuration container."""
    paths: PathsConfig = field(default_factory=PathsConfig)
    apply: ApplyConfig = field(default_factory=ApplyConfig)
    benchmark: BenchmarkConfig = field(default_factory=BenchmarkConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    subsystems: Dict[str, SubsystemConfig] = field(default_factory=default_subsystems)

    # Source tracking
    _config_file: Optional[Path] = None

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """
        Load configuration from file and environment.

        Args:
            config_path: Explicit path to config file. If None, uses
                         $SERVER_TUNING_CONFIG or searches default locations.

        Returns:
            Config instance with loaded values

        Raises:
            ConfigError: If an explicit file is missing or unparsable
        """
        config_path = config_path or os.environ.get(ENV_CONFIG)
        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise ConfigError(f"Config file not found: {config_path}")
        else:
            path = cls._find_config_file()

        if path:
            config = cls._load_from_file(path)
            config._config_file = path
        else:
            config = cls()

        state_dir = os.environ.get(ENV_STATE_DIR)
        if state_dir:
            config.paths.state_dir = state_dir

        return config

    @classmethod
    def _find_config_file(cls) -> Optional[Path]:
        """Find config file in default locations."""
        for path in CONFIG_SEARCH_PATHS:
            if path.exists():
                return path
        return None

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load config from TOML file."""
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        config = cls()

        config.paths = _section(PathsConfig, data.get("paths"), config.paths)
        config.apply = _section(ApplyConfig, data.get("apply"), config.apply)
        config.benchmark = _section(BenchmarkConfig, data.get("benchmark"), config.benchmark)
        config.database = _section(DatabaseConfig, data.get("database"), config.database)
        config.monitor = _section(MonitorConfig, data.get("monitor"), config.monitor)
        config.output = _section(OutputConfig, data.get("output"), config.output)

        for name, values in data.get("subsystems", {}).items():
            if name not in config.subsystems:
                raise ConfigError(f"Unknown subsystem in config: {name}")
            values = dict(values)
            values["name"] = name
            config.subsystems[name] = _section(SubsystemConfig, values, config.subsystems[name])

        return config

    def override_from_args(self, args) -> "Config":
        """
        Override config values from argparse namespace.

        Args with value None are ignored (keeping config file values).
        """
        if getattr(args, "state_dir", None):
            self.paths.state_dir = args.state_dir
        if getattr(args, "url", None):
            self.benchmark.url = args.url
            self.monitor.url = args.url
        if getattr(args, "db_host", None):
            self.database.host = args.db_host
        if getattr(args, "db_port", None):
            self.database.port = args.db_port
        if getattr(args, "db_user", None):
            self.database.user = args.db_user
        if getattr(args, "db_name", None):
            self.database.name = args.db_name
        if getattr(args, "interval", None):
            self.monitor.interval = args.interval
        if getattr(args, "verbose", None):
            self.output.verbose = True
            self.output.log_level = "DEBUG"
        if getattr(args, "quiet", None):
            self.output.quiet = True
            self.output.verbose = False

        return self

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.paths.state_dir:
            errors.append("paths.state_dir is required")

        for name in SUBSYSTEM_ORDER:
            sub = self.subsystems.get(name)
            if sub is None:
                errors.append(f"Subsystem {name} is not configured")
                continue
            if not sub.config_path:
                errors.append(f"subsystems.{name}.config_path is required")
            if sub.action not in SERVICE_ACTIONS:
                errors.append(f"subsystems.{name}.action must be one of {', '.join(SERVICE_ACTIONS)}")

        if self.benchmark.rounds < 1:
            errors.append("benchmark.rounds must be at least 1")
        if self.benchmark.requests < 1 or self.benchmark.concurrency < 1:
            errors.append("benchmark.requests and benchmark.concurrency must be at least 1")
        if self.benchmark.concurrency > self.benchmark.requests:
            errors.append("benchmark.concurrency cannot exceed benchmark.requests")
        if self.monitor.interval <= 0:
            errors.append("monitor.interval must be positive")
        if self.apply.stabilization_seconds < 0:
            errors.append("apply.stabilization_seconds cannot be negative")
        if self.apply.keep_backups < 1:
            errors.append("apply.keep_backups must be at least 1")

        return errors

    def summary(self, include_config_path: bool = True) -> str:
        """Generate human-readable config summary."""
        lines = []

        if include_config_path:
            if self._config_file:
                lines.append(f"Config: {self._config_file}")
            else:
                lines.append("Config: (defaults)")

        lines.append(f"State: {self.paths.state_dir}")
        for name in SUBSYSTEM_ORDER:
            sub = self.subsystems[name]
            state = "enabled" if sub.enabled else "disabled"
            lines.append(f"{name}: {sub.config_path} ({state}, service {sub.service or '-'})")
        lines.append(
            f"Benchmark: {self.benchmark.rounds} rounds, "
            f"{self.benchmark.requests} requests @ {self.benchmark.concurrency} against {self.benchmark.url}"
        )
        lines.append(f"Database: {self.database.user}@{self.database.host}:{self.database.port}/{self.database.name}")

        return "\n".join(lines)


def _section(cls, values: Optional[Dict[str, Any]], current):
    """Build a section dataclass from TOML values, keeping current defaults."""
    if not values:
        return current

    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown {cls.__name__} option(s): {', '.join(sorted(unknown))}")

    merged = {f.name: getattr(current, f.name) for f in fields(cls)}
    merged.update(values)
    return cls(**merged)
