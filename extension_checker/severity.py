"""
Severity resolution: maps raw issues to ERROR / WARNING / INFO.

Precedence, first match wins:
    1. per-type override from configuration (``warningLevels``)
    2. environment adjustment
    3. file-role adjustment
    4. built-in default table
    5. the issue's own severity, collapsed from the legacy five levels
    6. WARNING
Known issues are downgraded to INFO afterwards and carry their reason.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .issue import IGNORE, Issue, Severity, normalize_severity
from .path_matcher import glob_to_regex
from .utils import detect_file_role, is_test_file

logger = logging.getLogger(__name__)

IGNORE_IN_TEST_FILES = "ignore-in-test-files"

DEFAULT_SEVERITIES: Dict[str, Severity] = {
    # ERROR: must be fixed.
    "eval": Severity.ERROR,
    "function-constructor": Severity.ERROR,
    "string-timer": Severity.ERROR,
    "unsafe-innerHTML": Severity.ERROR,
    "unsafe-outerHTML": Severity.ERROR,
    "document-write": Severity.ERROR,
    "inline-script": Severity.ERROR,
    "hardcoded-secret": Severity.ERROR,
    "api-key": Severity.ERROR,
    "xss": Severity.ERROR,
    "sql-injection": Severity.ERROR,
    "missing-permission": Severity.ERROR,
    "content-script-injection": Severity.ERROR,
    # WARNING: should be fixed.
    "excessive-permission": Severity.WARNING,
    "unsafe-message-passing": Severity.WARNING,
    "console": Severity.WARNING,
    "debug-code": Severity.WARNING,
    "deprecated-api": Severity.WARNING,
    "localStorage": Severity.WARNING,
    "large-file": Severity.WARNING,
    "slow-regex": Severity.WARNING,
    "memory-leak": Severity.WARNING,
    # INFO: improvements.
    "naming-convention": Severity.INFO,
    "file-structure": Severity.INFO,
    "missing-documentation": Severity.INFO,
    "code-style": Severity.INFO,
}

SEVERITY_PROFILES: Dict[str, Dict[str, str]] = {
    "strict": {"console": "ERROR", "debug-code": "ERROR", "unused-permission": "ERROR", "code-style": "WARNING"},
    "balanced": {"console": "WARNING", "debug-code": "WARNING", "unused-permission": "WARNING", "code-style": "INFO"},
    "lenient": {"console": "INFO", "debug-code": "INFO", "unused-permission": "INFO", "code-style": "INFO"},
}

SYMBOLS = {Severity.ERROR: "✗", Severity.WARNING: "⚠", Severity.INFO: "ℹ"}

_NOISY = ("console", "debug-code")

# Spelling variants accepted in warningLevels values.
_LEVEL_ALIASES = {"warn": "WARNING", "error": "ERROR", "info": "INFO", "notice": "INFO", "skip": IGNORE}


@dataclass(frozen=True)
class ResolveContext:
    """Ambient facts used by resolution. ``file_role`` is derived from the issue path when None."""
    environment: Optional[str] = None
    file_role: Optional[str] = None
    count: Optional[int] = None
    strict_mode: Optional[bool] = None


_UNSET = object()


def parse_level(value: str) -> Union[Severity, str, None]:
    """Level name from configuration: a Severity, ``"ignore"``, or None when unrecognized."""
    key = str(value).strip()
    alias = _LEVEL_ALIASES.get(key.lower())
    if alias == IGNORE or key.lower() == IGNORE:
        return IGNORE
    try:
        return normalize_severity(alias or key)
    except ValueError:
        return None


class SeverityResolver:
    """Classifies issues using defaults, configuration overrides, and known issues."""

    def __init__(
        self,
        warning_levels: Optional[Mapping[str, Any]] = None,
        known_issues: Optional[Iterable[Mapping[str, str]]] = None,
        environment: Optional[str] = None,
        strict_mode: bool = False,
        fail_on_warning: bool = False,
        defaults: Optional[Mapping[str, Severity]] = None,
    ):
        self.warning_levels: Dict[str, Any] = dict(warning_levels or {})
        self.known_issues: List[Dict[str, str]] = [dict(k) for k in (known_issues or [])]
        self.environment = environment
        self.strict_mode = strict_mode
        self.fail_on_warning = fail_on_warning
        self.defaults: Dict[str, Severity] = dict(DEFAULT_SEVERITIES if defaults is None else defaults)

    # --- configuration ---

    def set_level(self, issue_type: str, level: Any) -> None:
        self.warning_levels[issue_type] = level

    def apply_profile(self, name: str) -> None:
        """Merge a named severity profile (strict, balanced, lenient) into the overrides."""
        if name not in SEVERITY_PROFILES:
            raise ValueError(f"Unknown severity profile: {name!r}")
        self.warning_levels.update(SEVERITY_PROFILES[name])

    # --- resolution ---

    def _override(self, issue: Issue, ctx: ResolveContext):
        config = self.warning_levels.get(issue.type)
        if config is None:
            return _UNSET
        if isinstance(config, str):
            if config == IGNORE_IN_TEST_FILES:
                return IGNORE if is_test_file(issue.file) else _UNSET
            level = parse_level(config)
            if level is None:
                logger.debug("Unrecognized warning level %r for %s", config, issue.type)
                return _UNSET
            return level
        if isinstance(config, Mapping):
            for pattern in config.get("excludeFiles") or config.get("exclude_files") or []:
                if issue.file == pattern or glob_to_regex(pattern, dot=True).match(issue.file or ""):
                    return IGNORE
            threshold = config.get("threshold")
            if threshold is not None and ctx.count is not None and ctx.count < threshold:
                return IGNORE
            level = parse_level(config.get("severity", "WARNING"))
            return Severity.WARNING if level is None else level
        return _UNSET

    def _environment(self, issue: Issue, ctx: ResolveContext) -> Optional[Severity]:
        env = ctx.environment if ctx.environment is not None else self.environment
        strict = ctx.strict_mode if ctx.strict_mode is not None else self.strict_mode
        if env == "development":
            if issue.type in _NOISY:
                return Severity.INFO
            if issue.type == "hardcoded-secret" and "test" in (issue.context or "").lower():
                return Severity.WARNING
        elif env == "test":
            if issue.type in _NOISY or issue.type == "hardcoded-secret":
                return Severity.INFO
        elif env == "production" and strict:
            if issue.type in _NOISY:
                return Severity.ERROR
        return None

    @staticmethod
    def _file_role(issue: Issue, role: Optional[str]) -> Optional[Severity]:
        if not role:
            return None
        if "config" in role and issue.type == "hardcoded-secret":
            return Severity.WARNING
        if "test" in role and issue.type in ("console", "hardcoded-secret", "eval"):
            return Severity.INFO
        if "background-script" in role and issue.type in ("eval", "localStorage"):
            return Severity.ERROR
        return None

    def _base(self, issue: Issue, ctx: ResolveContext) -> Optional[Severity]:
        override = self._override(issue, ctx)
        if override is not _UNSET:
            return None if override == IGNORE else override

        adjusted = self._environment(issue, ctx)
        if adjusted is not None:
            return adjusted

        role = ctx.file_role if ctx.file_role is not None else detect_file_role(issue.file)
        adjusted = self._file_role(issue, role)
        if adjusted is not None:
            return adjusted

        if issue.type in self.defaults:
            return self.defaults[issue.type]

        try:
            return normalize_severity(issue.severity)
        except ValueError:
            return Severity.WARNING

    def known_issue(self, issue: Issue) -> Optional[Dict[str, str]]:
        """The known-issue entry covering this issue, if any."""
        for known in self.known_issues:
            if known.get("issue") not in (issue.type, "*"):
                continue
            pattern = known.get("file", "")
            if issue.file == pattern or glob_to_regex(pattern, dot=True).match(issue.file or ""):
                return known
        return None

    def resolve(self, issue: Issue, context: Optional[ResolveContext] = None) -> Optional[Severity]:
        """Resolved level for ``issue``; None means the issue is ignored."""
        ctx = context or ResolveContext()
        if self.known_issue(issue) is not None:
            return Severity.INFO
        return self._base(issue, ctx)

    def classify(self, issues: Iterable[Issue], context: Optional[ResolveContext] = None) -> List[Issue]:
        """Resolved copies of ``issues``; ignored issues are dropped, known issues carry their reason."""
        issues = list(issues)
        counts = Counter(i.type for i in issues)
        base = context or ResolveContext()
        out: List[Issue] = []
        for issue in issues:
            ctx = ResolveContext(base.environment, base.file_role, counts[issue.type], base.strict_mode)
            level = self.resolve(issue, ctx)
            if level is None:
                continue
            known = self.known_issue(issue)
            out.append(issue.with_severity(level, known.get("reason") if known else None))
        return out

    # --- aggregates ---

    def _level_of(self, issue: Issue) -> Optional[Severity]:
        if isinstance(issue.severity, Severity):
            return issue.severity
        return self.resolve(issue)

    def group_by_severity(self, issues: Iterable[Issue]) -> Dict[Severity, List[Issue]]:
        groups: Dict[Severity, List[Issue]] = {Severity.ERROR: [], Severity.WARNING: [], Severity.INFO: []}
        for issue in issues:
            level = self._level_of(issue)
            if level is not None:
                groups[level].append(issue)
        return groups

    def filter_by_minimum(self, issues: Iterable[Issue], minimum: Union[Severity, str] = Severity.INFO) -> List[Issue]:
        floor = minimum if isinstance(minimum, Severity) else Severity.parse(minimum)
        out = []
        for issue in issues:
            level = self._level_of(issue)
            if level is not None and level >= floor:
                out.append(issue)
        return out

    def statistics(self, issues: Iterable[Issue]) -> Dict[str, Any]:
        issues = list(issues)
        stats: Dict[str, Any] = {
            "total": 0,
            "byLevel": {s.value: 0 for s in Severity},
            "byType": {},
        }
        for issue in issues:
            level = self._level_of(issue)
            if level is None:
                continue
            stats["total"] += 1
            stats["byLevel"][level.value] += 1
            entry = stats["byType"].setdefault(issue.type, {"count": 0, "severities": {}})
            entry["count"] += 1
            entry["severities"][level.value] = entry["severities"].get(level.value, 0) + 1
        return stats

    def exit_code(self, issues: Iterable[Issue], fail_on_warning: Optional[bool] = None) -> int:
        """1 if any ERROR, or any WARNING when failing on warnings; else 0."""
        by_level = self.statistics(issues)["byLevel"]
        if by_level["ERROR"] > 0:
            return 1
        fail = self.fail_on_warning if fail_on_warning is None else fail_on_warning
        if fail and by_level["WARNING"] > 0:
            return 1
        return 0

    def format_message(
        self,
        issue: Issue,
        include_symbol: bool = True,
        include_context: bool = False,
        include_suggestion: bool = False,
    ) -> str:
        level = self._level_of(issue) or Severity.INFO
        parts = []
        if include_symbol:
            parts.append(f"{SYMBOLS[level]} ")
        parts.append(f"[{level.value}] ")
        if issue.file and issue.line:
            loc = f"{issue.file}:{issue.line}"
            if issue.column:
                loc += f":{issue.column}"
            parts.append(loc + " - ")
        parts.append(issue.message)
        if issue.reason:
            parts.append(f" (known issue: {issue.reason})")
        if include_context and issue.context:
            parts.append(f"\n  Context: {issue.context}")
        if include_suggestion and issue.suggestion:
            parts.append(f"\n  Suggestion: {issue.suggestion}")
        return "".join(parts)

    def summary_line(self, issues: Iterable[Issue]) -> str:
        by_level = self.statistics(issues)["byLevel"]
        parts = []
        if by_level["ERROR"]:
            parts.append(f"{SYMBOLS[Severity.ERROR]} {by_level['ERROR']} errors")
        if by_level["WARNING"]:
            parts.append(f"{SYMBOLS[Severity.WARNING]} {by_level['WARNING']} warnings")
        if by_level["INFO"]:
            parts.append(f"{SYMBOLS[Severity.INFO]} {by_level['INFO']} info")
        return ", ".join(parts) if parts else "No issues found"
