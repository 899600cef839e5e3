"""
DatabaseWorkload - A fixed CPU-bound query run against PostgreSQL.
"""

import logging
import time
from typing import Optional

import psycopg2

from ..config import DatabaseConfig

logger = logging.getLogger(__name__)

WORKLOAD_SQL = "SELECT sum(1 + 1) FROM generate_series(1, %s)"


class DatabaseWorkload:
    """
    Times the workload query over a fresh connection.

    Errors never propagate: a benchmark round records 0 and the monitor
    records no value.
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or DatabaseConfig()

    def _connect(self):
        return psycopg2.connect(
            host=self.config.host,
            port=self.config.port,
            user=self.config.user,
            password=self.config.password or None,
            dbname=self.config.name,
            connect_timeout=self.config.connect_timeout,
        )

    def _elapsed(self, iterations: int) -> Optional[float]:
        """Seconds taken by the workload query, or None on error."""
        try:
            conn = self._connect()
        except psycopg2.Error as e:
            logger.warning("Database workload could not connect: %s", str(e).strip())
            return None

        try:
            with conn.cursor() as cur:
                start = time.perf_counter()
                cur.execute(WORKLOAD_SQL, (iterations,))
                cur.fetchone()
                return time.perf_counter() - start
        except psycopg2.Error as e:
            logger.warning("Database workload failed: %s", str(e).strip())
            return None
        finally:
            conn.close()

    def queries_per_second(self, iterations: int) -> int:
        elapsed = self._elapsed(iterations)
        if not elapsed:
            return 0
        return int(iterations / elapsed)

    def query_time_ms(self, iterations: int) -> Optional[float]:
        elapsed = self._elapsed(iterations)
        if elapsed is None:
            return None
        return round(elapsed * 1000, 3)
