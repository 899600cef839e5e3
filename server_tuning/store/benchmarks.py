"""
BenchmarkLog - Append-only log of benchmark results (JSON lines).
"""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from ..protocol.result import BenchmarkResult

logger = logging.getLogger(__name__)


class BenchmarkLog:
    """benchmarks.jsonl: one BenchmarkResult per line, oldest first."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, result: BenchmarkResult) -> None:
        line = json.dumps(result.to_dict(), sort_keys=True)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a") as f:
                f.write(line + "\n")
        logger.debug("Recorded benchmark for %s in %s", result.profile_name, self.path)

    def list(self, profile_name: Optional[str] = None) -> List[BenchmarkResult]:
        """All results (optionally for one profile), in log order."""
        results = []
        if not self.path.exists():
            return results
        with open(self.path) as f:
            for lineno, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    result = BenchmarkResult.from_dict(json.loads(line))
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning("Skipping corrupt benchmark record %s:%d: %s", self.path, lineno, e)
                    continue
                if profile_name is None or result.profile_name == profile_name:
                    results.append(result)
        return results

    def latest(self, profile_name: str) -> Optional[BenchmarkResult]:
        results = self.list(profile_name)
        return results[-1] if results else None

    def latest_per_profile(self) -> Dict[str, BenchmarkResult]:
        latest: Dict[str, BenchmarkResult] = {}
        for result in self.list():
            latest[result.profile_name] = result
        return latest
