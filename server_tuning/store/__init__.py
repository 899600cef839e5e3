"""
Store module - Durable state under the state directory.

- ProfileStore: profiles/<name>.json
- CurrentProfileState: current-profile.json
- BenchmarkLog: benchmarks.jsonl
"""

from .atomic import atomic_write_bytes, atomic_write_text
from .benchmarks import BenchmarkLog
from .profiles import ProfileStore, validate_profile_name, PROFILE_NAME_RE
from .state import CurrentProfileState

__all__ = [
    "atomic_write_bytes",
    "atomic_write_text",
    "BenchmarkLog",
    "ProfileStore",
    "validate_profile_name",
    "PROFILE_NAME_RE",
    "CurrentProfileState",
]
