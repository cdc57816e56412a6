"""
Shared base for the built-in suites: file helpers rooted at the extension path.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Pattern, Type, Union

from ..config import CheckerConfig
from ..context import CheckContext
from ..errors import ValidationError
from ..issue import Issue, Severity
from ..suite import TestSuite
from ..utils import MANIFEST_FILE, to_posix


class ExtensionSuite(TestSuite):
    """A TestSuite bound to one extension tree."""

    key = ""
    title = ""
    summary = ""

    def __init__(self, config: CheckerConfig):
        super().__init__(
            name=self.title,
            description=self.summary,
            category=self.key,
            factory=f"{type(self).__module__}:build",
        )
        self.config = config
        self.setup_tests()

    def setup_tests(self) -> None:
        raise NotImplementedError

    # --- file helpers ---

    def path(self, rel_path: str) -> Path:
        return self.config.root / rel_path

    def load_file(self, rel_path: str) -> str:
        full = self.path(rel_path)
        if not full.is_file():
            raise ValidationError(f"File not found: {rel_path}")
        return full.read_text(encoding="utf-8-sig", errors="replace")

    def load_json(self, rel_path: str) -> Any:
        try:
            return json.loads(self.load_file(rel_path))
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {rel_path}: {e}") from e

    def load_manifest(self) -> Dict[str, Any]:
        if not self.file_exists(MANIFEST_FILE):
            raise ValidationError("manifest.json not found")
        manifest = self.load_json(MANIFEST_FILE)
        if not isinstance(manifest, dict):
            raise ValidationError("manifest.json must contain a JSON object")
        return manifest

    def file_exists(self, rel_path: str) -> bool:
        return self.path(rel_path).exists()

    def read_directory(self, rel_path: str = "") -> List[str]:
        full = self.path(rel_path)
        if not full.is_dir():
            return []
        return sorted(p.name for p in full.iterdir())

    def get_file_size(self, rel_path: str) -> int:
        try:
            return self.path(rel_path).stat().st_size
        except OSError:
            return 0

    def search_in_file(self, rel_path: str, pattern: Union[str, Pattern]) -> List[str]:
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        return [m.group(0) for m in regex.finditer(self.load_file(rel_path))]

    def get_all_files(self, context: CheckContext, extensions: Optional[Iterable[str]] = None) -> List[str]:
        """Base-relative paths of the scanned files, optionally filtered by extension."""
        exts = tuple(e.lower() for e in extensions) if extensions else None
        out = []
        for p in context.toolkit.files():
            if exts and p.suffix.lower() not in exts:
                continue
            out.append(to_posix(p.relative_to(context.toolkit.matcher.base_dir)))
        return out


def at_least(issues: Iterable[Issue], minimum: Severity) -> List[Issue]:
    return [i for i in issues if isinstance(i.severity, Severity) and i.severity >= minimum]


def locations(issues: Iterable[Issue], limit: int = 5) -> str:
    issues = list(issues)
    shown = ", ".join(f"{i.file}:{i.line}" for i in issues[:limit])
    if len(issues) > limit:
        shown += f" and {len(issues) - limit} more"
    return shown


def fail_on_issues(
    context: CheckContext,
    types: Iterable[str],
    what: str,
    error: Type[ValidationError] = ValidationError,
    minimum: Severity = Severity.ERROR,
) -> None:
    """Fail when any resolved issue of ``types`` reaches ``minimum``; report lower ones as warnings."""
    issues = context.toolkit.issues(*types)
    blocking = at_least(issues, minimum)
    if blocking:
        raise error(f"{what} found in {locations(blocking)}", details={"count": len(blocking)})
    for issue in issues:
        if issue.severity == Severity.WARNING:
            context.warn(f"{issue.message} ({issue.file}:{issue.line})")
