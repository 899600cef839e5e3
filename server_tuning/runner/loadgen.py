"""
HTTP load generation.

The ApacheBench adapter is the only place that knows about ``ab``'s text
output.
"""

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import List

from ..protocol.errors import LoadToolUnavailable

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Outcome of one HTTP burst."""
    requests_per_second: float = 0.0
    response_time_ms: float = 0.0   # mean time per request
    failed_requests: int = 0


class LoadGenerator:
    """Interface: run a burst of HTTP requests against a URL."""

    def run(self, url: str, requests: int, concurrency: int) -> LoadResult:
        raise NotImplementedError


class ApacheBench(LoadGenerator):
    """Runs ``ab -n <requests> -c <concurrency> <url>``."""

    def __init__(self, ab_path: str = "ab", timeout: int = 300):
        self.ab_path = ab_path
        self.timeout = timeout

    def _build_command(self, url: str, requests: int, concurrency: int) -> List[str]:
        return [self.ab_path, "-n", str(requests), "-c", str(concurrency), url]

    def run(self, url: str, requests: int, concurrency: int) -> LoadResult:
        """
        Execute one burst.

        Raises:
            LoadToolUnavailable: If ab is missing, fails, or its output
                                 cannot be parsed
        """
        binary = shutil.which(self.ab_path)
        if not binary:
            raise LoadToolUnavailable(f"ApacheBench not found: {self.ab_path}")

        cmd = self._build_command(url, requests, concurrency)
        cmd[0] = binary
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            raise LoadToolUnavailable(f"ab timed out after {self.timeout}s")
        except OSError as e:
            raise LoadToolUnavailable(f"ab could not run: {e}")

        if result.returncode != 0:
            raise LoadToolUnavailable(
                f"ab exited with {result.returncode}: {(result.stderr or '').strip()}"
            )
        return self.parse_output(result.stdout)

    @staticmethod
    def parse_output(output: str) -> LoadResult:
        """Parse ab's report into a LoadResult."""
        # "Requests per second:    1234.56 [#/sec] (mean)"
        rps_match = re.search(r"Requests per second:\s*([\d.]+)", output)
        # "Time per request:       8.100 [ms] (mean)"
        time_match = re.search(r"Time per request:\s*([\d.]+)\s*\[ms\]\s*\(mean\)", output)
        if not rps_match or not time_match:
            raise LoadToolUnavailable("Could not parse ab output")

        # "Failed requests:        0"
        failed_match = re.search(r"Failed requests:\s*(\d+)", output)

        return LoadResult(
            requests_per_second=float(rps_match.group(1)),
            response_time_ms=float(time_match.group(1)),
            failed_requests=int(failed_match.group(1)) if failed_match else 0,
        )
