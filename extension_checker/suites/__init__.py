"""
Built-in test suites, keyed by the names used in the ``suites`` config option
and by incremental targeting.
"""

from .localization import LocalizationSuite
from .manifest import ManifestSuite
from .performance import PerformanceSuite
from .security import SecuritySuite
from .structure import StructureSuite

BUILTIN_SUITES = {
    "manifest": ManifestSuite,
    "security": SecuritySuite,
    "performance": PerformanceSuite,
    "structure": StructureSuite,
    "localization": LocalizationSuite,
}


def builtin_suites(config, keys=None):
    """Instantiate built-in suites in registration order, optionally limited to ``keys``."""
    selected = keys if keys is not None else (config.suites or list(BUILTIN_SUITES))
    return [cls(config) for key, cls in BUILTIN_SUITES.items() if key in selected]


__all__ = [
    "BUILTIN_SUITES",
    "builtin_suites",
    "ManifestSuite",
    "SecuritySuite",
    "PerformanceSuite",
    "StructureSuite",
    "LocalizationSuite",
]
