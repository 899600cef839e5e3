"""
Tuning module - Generates profiles and applies them with backup and rollback.

Components:
- ProfileGenerator: Hardware profile -> tuning profile
- ConfigBuilder (one per subsystem): logical settings -> native keys/units
- ConfigSurface: Merges settings into a subsystem's config file
- BackupManager: Captures config files before tuning
- ProfileApplier: Safe application with per-subsystem rollback
- ServiceController: Reloads/restarts the managed services
"""

from .generator import ProfileGenerator, classify_tier, clamp, SETTING_BOUNDS
from .builders import ConfigBuilder, builder_for, BUILDERS
from .surface import ConfigSurface, build_surfaces
from .snapshot import BackupManager, BackupSet, BackupHandle
from .executor import ProfileApplier, ApplierConfig
from .service import ServiceController, ServiceConfig

__all__ = [
    "ProfileGenerator",
    "classify_tier",
    "clamp",
    "SETTING_BOUNDS",
    "ConfigBuilder",
    "builder_for",
    "BUILDERS",
    "ConfigSurface",
    "build_surfaces",
    "BackupManager",
    "BackupSet",
    "BackupHandle",
    "ProfileApplier",
    "ApplierConfig",
    "ServiceController",
    "ServiceConfig",
]
