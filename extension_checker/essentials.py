"""
Checks that still run in quick mode. Anything not listed here is skipped.
"""

from typing import Dict, FrozenSet, Mapping, Optional

ESSENTIAL_TESTS: Dict[str, FrozenSet[str]] = {
    "Manifest Validation": frozenset({
        "manifest.json exists",
        "Valid JSON format",
        "Manifest version is 3",
        "Required fields present",
    }),
    "Security Validation": frozenset({
        "Content Security Policy validation",
        "No eval() usage",
        "No hardcoded secrets",
        "Least privilege permissions",
    }),
    "Structure Validation": frozenset({
        "Required files present",
        "No development files",
    }),
}


def is_essential(suite_name: str, test_name: str, catalog: Optional[Mapping[str, FrozenSet[str]]] = None) -> bool:
    catalog = ESSENTIAL_TESTS if catalog is None else catalog
    return test_name in catalog.get(suite_name, frozenset())
