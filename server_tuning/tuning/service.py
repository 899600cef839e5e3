"""
ServiceController - Manages the managed subsystems' services.

Provides:
- Service reload/restart (systemctl)
- Running check (systemctl is-active)
- Ad hoc reload commands (e.g. sysctl -p)
- Log retrieval (journalctl)
"""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """Configuration for service controller."""
    systemctl: str = "systemctl"
    journalctl: str = "journalctl"
    command_timeout: int = 120  # seconds


class ServiceController:
    """
    Controls local services through systemd.

    reload/restart/run return False on failure rather than raising; the
    applier decides what a failure means for the run.
    """

    def __init__(self, config: ServiceConfig = None):
        self.config = config or ServiceConfig()

    def _run_command(self, cmd: str, check: bool = True) -> subprocess.CompletedProcess:
        """Run a command locally."""
        logger.debug("Running: %s", cmd)
        return subprocess.run(
            cmd,
            shell=True,
            capture_output=True,
            text=True,
            check=check,
            timeout=self.config.command_timeout,
        )

    def _systemctl(self, action: str, service: str) -> bool:
        try:
            self._run_command(f"{self.config.systemctl} {action} {shlex.quote(service)}", check=True)
            return True
        except subprocess.CalledProcessError as e:
            logger.error("systemctl %s %s failed: %s", action, service, (e.stderr or "").strip())
            return False
        except subprocess.TimeoutExpired:
            logger.error("systemctl %s %s timed out", action, service)
            return False

    def reload(self, service: str) -> bool:
        """Reload a service's configuration."""
        return self._systemctl("reload", service)

    def restart(self, service: str) -> bool:
        """Restart a service."""
        return self._systemctl("restart", service)

    def status(self, service: str) -> str:
        """Get service status."""
        try:
            result = self._run_command(
                f"{self.config.systemctl} is-active {shlex.quote(service)}", check=False
            )
            return result.stdout.strip()
        except (OSError, subprocess.SubprocessError):
            return "unknown"

    def is_running(self, service: str) -> bool:
        """Check if service is running."""
        return self.status(service) == "active"

    def run(self, cmd: str) -> bool:
        """Run an arbitrary reload command (e.g. sysctl -p <file>)."""
        try:
            self._run_command(cmd, check=True)
            return True
        except subprocess.CalledProcessError as e:
            logger.error("Command failed (%s): %s", cmd, (e.stderr or "").strip())
            return False
        except subprocess.TimeoutExpired:
            logger.error("Command timed out: %s", cmd)
            return False

    def get_tail_logs(self, service: str, lines: int = 50) -> List[str]:
        """
        Get recent service logs from journalctl.

        Args:
            service: Unit name
            lines: Number of log lines to retrieve

        Returns:
            List of log lines
        """
        try:
            cmd = f"{self.config.journalctl} -u {shlex.quote(service)} -n {lines} --no-pager"
            result = self._run_command(cmd, check=False)
            return result.stdout.strip().split('\n') if result.stdout else []
        except (OSError, subprocess.SubprocessError):
            return []
