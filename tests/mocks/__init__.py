"""
Mock components for testing server_tuning.

These mocks stand in for systemd, ApacheBench, PostgreSQL and the host's
metrics so tests never touch real services, sleep or use the network.
"""

from .mock_benchmark import MockLoadGenerator, UnavailableLoadGenerator, MockDatabaseWorkload
from .mock_services import MockServiceController, MockMetricsSource

__all__ = [
    'MockLoadGenerator',
    'UnavailableLoadGenerator',
    'MockDatabaseWorkload',
    'MockServiceController',
    'MockMetricsSource',
]
