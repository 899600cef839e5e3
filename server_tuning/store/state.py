"""
CurrentProfileState - The active-profile pointer.

Stored as current-profile.json:

    {"profile_name": "web-2024", "activated_at": "2024-05-01T12:00:00Z"}

Writers are serialized with a threading.Lock and each write replaces the
file atomically, so readers see either the old or the new pointer.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any

from ..protocol.profile import format_timestamp
from .atomic import atomic_write_text

logger = logging.getLogger(__name__)


class CurrentProfileState:
    """Explicit handle on the active-profile pointer."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def read(self) -> Optional[Dict[str, Any]]:
        """Raw pointer record, or None when no profile has been activated."""
        if not self.path.exists():
            return None
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Active profile pointer %s is unreadable: %s", self.path, e)
            return None
        if not isinstance(data, dict) or not data.get("profile_name"):
            return None
        return data

    def get(self) -> Optional[str]:
        data = self.read()
        return data["profile_name"] if data else None

    def set(self, name: str, activated_at: Optional[datetime] = None) -> None:
        record = {
            "profile_name": name,
            "activated_at": format_timestamp(activated_at or datetime.now(timezone.utc)),
        }
        with self._lock:
            atomic_write_text(self.path, json.dumps(record, indent=2) + "\n")
        logger.info("Active profile set to %s", name)
