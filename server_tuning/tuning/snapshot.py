"""
BackupManager - Captures subsystem config files before tuning for rollback.

Every apply run gets its own timestamped backup set:

    backups/<profile>_<YYYYmmdd_HHMMSS>/
        manifest.json
        web_server.bak
        runtime.bak
        ...

BackupSet.protect() is a scoped acquisition: the backup exists before the
body runs, and the file is restored on every failing exit path.
"""

import json
import logging
import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Any

from ..protocol.errors import BackupError
from ..store.atomic import atomic_write_bytes, atomic_write_text

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


@dataclass
class BackupHandle:
    """Backup of one subsystem's config file."""
    subsystem: str
    source: Path
    backup_path: Optional[Path]
    existed: bool
    restored: bool = False

    def restore(self) -> None:
        """Put the original file back (or remove a file that did not exist)."""
        if self.existed:
            if self.backup_path is None or not self.backup_path.exists():
                raise BackupError(self.subsystem, f"backup missing for {self.source}")
            atomic_write_bytes(self.source, self.backup_path.read_bytes(), mode_from=self.backup_path)
        elif self.source.exists():
            self.source.unlink()
        self.restored = True
        logger.info("Restored %s configuration from backup: %s", self.subsystem, self.source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": str(self.source),
            "backup": str(self.backup_path) if self.backup_path else None,
            "existed": self.existed,
        }


class BackupSet:
    """Backups taken during a single apply run."""

    def __init__(self, path: Path, profile_name: str, created_at: str):
        self.path = Path(path)
        self.profile_name = profile_name
        self.created_at = created_at
        self.handles: Dict[str, BackupHandle] = {}

    @property
    def name(self) -> str:
        return self.path.name

    def take(self, subsystem: str, source: Path) -> BackupHandle:
        """
        Copy source into the set before it is mutated.

        Raises:
            BackupError: If the backup could not be written
        """
        source = Path(source)
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            if source.exists():
                backup_path = self.path / f"{subsystem}.bak"
                shutil.copy2(str(source), str(backup_path))
                handle = BackupHandle(subsystem, source, backup_path, existed=True)
            else:
                handle = BackupHandle(subsystem, source, None, existed=False)
            self.handles[subsystem] = handle
            self._write_manifest()
        except OSError as e:
            raise BackupError(subsystem, f"backup of {source} failed: {e}")

        logger.debug("Backed up %s configuration to %s", subsystem, handle.backup_path or "(absent)")
        return handle

    @contextmanager
    def protect(self, subsystem: str, source: Path) -> Iterator[BackupHandle]:
        """Back up source, restoring it if the body raises."""
        handle = self.take(subsystem, source)
        try:
            yield handle
        except BaseException:
            try:
                handle.restore()
            except (OSError, BackupError) as restore_error:
                logger.error("Rollback of %s failed: %s", subsystem, restore_error)
            raise

    def _write_manifest(self) -> None:
        manifest = {
            "profile_name": self.profile_name,
            "created_at": self.created_at,
            "entries": {name: handle.to_dict() for name, handle in self.handles.items()},
        }
        atomic_write_text(self.path / MANIFEST_NAME, json.dumps(manifest, indent=2))

    @classmethod
    def load(cls, path: Path) -> "BackupSet":
        """Load a backup set from its manifest."""
        path = Path(path)
        with open(path / MANIFEST_NAME) as f:
            manifest = json.load(f)

        backup_set = cls(path, manifest.get("profile_name", ""), manifest.get("created_at", ""))
        for subsystem, entry in manifest.get("entries", {}).items():
            backup_set.handles[subsystem] = BackupHandle(
                subsystem=subsystem,
                source=Path(entry["source"]),
                backup_path=Path(entry["backup"]) if entry.get("backup") else None,
                existed=bool(entry.get("existed")),
            )
        return backup_set


class BackupManager:
    """Creates, lists and prunes backup sets."""

    def __init__(self, backups_dir: Path):
        self.backups_dir = Path(backups_dir)

    def begin(self, profile_name: str, now: Optional[datetime] = None) -> BackupSet:
        """Start a new backup set for an apply run."""
        now = now or datetime.now()
        base = f"{profile_name}_{now.strftime('%Y%m%d_%H%M%S')}"
        path = self.backups_dir / base
        suffix = 1
        while path.exists():
            path = self.backups_dir / f"{base}-{suffix}"
            suffix += 1
        return BackupSet(path, profile_name, now.isoformat())

    def list_sets(self) -> List[BackupSet]:
        """All readable backup sets, newest first."""
        sets = []
        if not self.backups_dir.exists():
            return sets
        for path in self.backups_dir.iterdir():
            if not (path / MANIFEST_NAME).exists():
                continue
            try:
                sets.append(BackupSet.load(path))
            except (OSError, ValueError, KeyError) as e:
                logger.warning("Skipping unreadable backup set %s: %s", path, e)
        sets.sort(key=lambda s: (s.created_at, s.name), reverse=True)
        return sets

    def latest(self) -> Optional[BackupSet]:
        sets = self.list_sets()
        return sets[0] if sets else None

    def get(self, name: str) -> Optional[BackupSet]:
        path = self.backups_dir / name
        if not (path / MANIFEST_NAME).exists():
            return None
        return BackupSet.load(path)

    def cleanup_old(self, keep_count: int = 20) -> int:
        """
        Remove old backup sets, keeping the most recent ones.

        Returns:
            Number of sets removed
        """
        removed = 0
        for backup_set in self.list_sets()[keep_count:]:
            shutil.rmtree(backup_set.path, ignore_errors=True)
            removed += 1
        if removed:
            logger.info("Pruned %d old backup set(s)", removed)
        return removed
