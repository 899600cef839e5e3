"""
ProfileStore - Durable, name-keyed storage of tuning profiles.

Layout under the state directory:

    profiles/<name>.json
    current-profile.json
"""

import json
import logging
import re
from pathlib import Path
from typing import List, Optional

from ..protocol.errors import InvalidProfileName, ProfileInUse, ProfileNotFound
from ..protocol.profile import TuningProfile, ProfileSummary
from .atomic import atomic_write_text
from .state import CurrentProfileState

logger = logging.getLogger(__name__)

PROFILE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def validate_profile_name(name: str) -> str:
    """
    Check that a profile name is usable as a file name.

    Raises:
        InvalidProfileName: If the name is empty or contains path characters
    """
    if not isinstance(name, str) or not PROFILE_NAME_RE.match(name):
        raise InvalidProfileName(
            f"Invalid profile name {name!r}: use letters, digits, '.', '_' or '-' "
            f"and start with a letter or digit"
        )
    return name


class ProfileStore:
    """Profiles as JSON documents, one file per profile."""

    def __init__(self, profiles_dir: Path, state: CurrentProfileState):
        self.profiles_dir = Path(profiles_dir)
        self.state = state

    def _path(self, name: str) -> Path:
        return self.profiles_dir / f"{validate_profile_name(name)}.json"

    def save(self, profile: TuningProfile) -> Path:
        """Persist a profile, replacing any profile of the same name."""
        path = self._path(profile.name)
        atomic_write_text(path, json.dumps(profile.to_dict(), indent=2) + "\n")
        logger.info("Saved tuning profile %s to %s", profile.name, path)
        return path

    def exists(self, name: str) -> bool:
        return self._path(name).exists()

    def load(self, name: str) -> TuningProfile:
        """
        Load a stored profile.

        Raises:
            ProfileNotFound: If no profile with that name exists
        """
        path = self._path(name)
        if not path.exists():
            raise ProfileNotFound(name)
        with open(path) as f:
            return TuningProfile.from_dict(json.load(f))

    def list(self) -> List[ProfileSummary]:
        """Summaries of all readable profiles, newest first."""
        summaries = []
        if not self.profiles_dir.exists():
            return summaries
        for path in sorted(self.profiles_dir.glob("*.json")):
            try:
                with open(path) as f:
                    profile = TuningProfile.from_dict(json.load(f))
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning("Skipping unreadable profile %s: %s", path.name, e)
                continue
            summaries.append(profile.summary())
        summaries.sort(key=lambda s: (s.generated_at, s.name), reverse=True)
        return summaries

    def delete(self, name: str) -> None:
        """
        Remove a stored profile.

        Raises:
            ProfileNotFound: If no profile with that name exists
            ProfileInUse: If the profile is the active one
        """
        path = self._path(name)
        if not path.exists():
            raise ProfileNotFound(name)
        if self.get_active() == name:
            raise ProfileInUse(f"Profile {name} is active and cannot be deleted")
        path.unlink()
        logger.info("Deleted tuning profile %s", name)

    def get_active(self) -> Optional[str]:
        return self.state.get()

    def set_active(self, name: str) -> None:
        """
        Point the active-profile pointer at a stored profile.

        Raises:
            ProfileNotFound: If no profile with that name exists
        """
        if not self.exists(name):
            raise ProfileNotFound(name)
        self.state.set(name)
