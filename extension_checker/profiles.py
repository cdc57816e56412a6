"""
Built-in configuration profiles.

A profile is a partial configuration merged underneath the user's settings.
Custom profiles come from the ``profiles`` key and may ``extend`` a built-in one.
"""

import copy
from typing import Any, Dict, List, Mapping, Optional

BUILTIN_PROFILES: Dict[str, Dict[str, Any]] = {
    "development": {
        "description": "Relaxed rules for development",
        "environment": "development",
        "exclude": ["dist/**", "build/**", "coverage/**", "*.min.js"],
        "warningLevels": {
            "console": "ignore",
            "debug-code": "ignore",
        },
        "failOnWarning": False,
        "failOnError": False,
        "skipTests": ["No development files", "No excessive console logging"],
    },
    "production": {
        "description": "Strict rules for production",
        "environment": "production",
        "exclude": ["test/**", "tests/**", "__tests__/**", "docs/**", "examples/**", "*.test.js", "*.spec.js"],
        "warningLevels": {
            "console": "error",
            "debug-code": "error",
            "unsafe-innerHTML": "error",
            "eval": "error",
        },
        "failOnWarning": True,
        "failOnError": True,
        "maxFileSize": 1_000_000,
        "maxTotalSize": 5_000_000,
    },
    "ci": {
        "description": "Optimized for CI pipelines",
        "exclude": ["coverage/**", ".nyc_output/**"],
        "warningLevels": {
            "console": "error",
            "debug-code": "error",
        },
        "failOnWarning": True,
        "failOnError": True,
        "parallel": True,
    },
    "quick": {
        "description": "Fast validation for pre-commit hooks",
        "exclude": ["test/**", "docs/**", "examples/**", "coverage/**"],
        "suites": ["manifest", "security"],
        "quick": True,
        "warningLevels": {
            "console": "ignore",
        },
        "failOnError": True,
        "timeout": 10,
    },
}

# Lists are appended and mappings merged key by key when a profile is applied.
_APPEND_KEYS = ("exclude", "skipTests")
_MERGE_KEYS = ("warningLevels",)


class ProfileNotFound(KeyError):
    pass


def profile_names(custom: Optional[Mapping[str, Any]] = None) -> List[str]:
    return sorted(set(BUILTIN_PROFILES) | set(custom or {}))


def get_profile(name: str, custom: Optional[Mapping[str, Mapping[str, Any]]] = None) -> Dict[str, Any]:
    """Profile data with ``extends`` chains resolved. Raises ProfileNotFound."""
    custom = custom or {}
    seen = []
    chain = []
    current: Optional[str] = name
    while current:
        if current in seen:
            raise ProfileNotFound(f"Profile inheritance cycle: {' -> '.join(seen + [current])}")
        seen.append(current)
        if current in custom:
            data = custom[current]
        elif current in BUILTIN_PROFILES:
            data = BUILTIN_PROFILES[current]
        else:
            raise ProfileNotFound(current)
        chain.append(data)
        current = data.get("extends")

    resolved: Dict[str, Any] = {}
    for data in reversed(chain):
        resolved = merge_layers(resolved, {k: v for k, v in data.items() if k not in ("extends", "description")})
    return resolved


def merge_layers(base: Mapping[str, Any], top: Mapping[str, Any]) -> Dict[str, Any]:
    """Overlay ``top`` on ``base``: list keys append, mapping keys merge, others replace."""
    merged = copy.deepcopy(dict(base))
    for key, value in top.items():
        if key in _APPEND_KEYS and isinstance(value, list):
            existing = merged.get(key) or []
            if isinstance(existing, str):
                existing = [existing]
            merged[key] = list(existing) + [v for v in value if v not in existing]
        elif key in _MERGE_KEYS and isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = {**merged[key], **value}
        elif isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_layers(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged
