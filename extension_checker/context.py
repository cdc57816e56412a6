"""
Run-time context handed to checks: configuration, shared tools, and a scoped
warning sink.

Warnings are captured through explicit scopes instead of patching a global
sink. The runner opens one scope per suite and a child scope per case; a
closed scope drops anything written to it afterwards, so a check abandoned on
timeout cannot add warnings to a result that was already recorded.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .config import CheckerConfig
from .issue import Issue
from .path_matcher import PathMatcher
from .rules import load_rules
from .safe_patterns import SafePatternRecognizer
from .scanner import ContextAwareScanner
from .severity import ResolveContext, SeverityResolver

logger = logging.getLogger(__name__)


@dataclass
class CapturedWarning:
    message: str
    source: Optional[str] = None
    scope: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"message": self.message, "timestamp": self.timestamp}
        if self.source:
            out["source"] = self.source
        if self.scope:
            out["scope"] = self.scope
        if self.data:
            out["data"] = self.data
        return out


class WarningScope:
    """A warning sink open for one execution window."""

    def __init__(self, name: str, parent: Optional["WarningScope"] = None):
        self.name = name
        self.parent = parent
        self.items: List[CapturedWarning] = []
        self.closed = False
        self._lock = threading.Lock()

    def warn(self, message: str, source: Optional[str] = None, **data: Any) -> None:
        with self._lock:
            if self.closed:
                logger.debug("Dropped late warning from closed scope %s: %s", self.name, message)
                return
            self.items.append(CapturedWarning(message, source, self.name, data=data))
        logger.warning("%s", message)

    def child(self, name: str) -> "WarningScope":
        return WarningScope(name, parent=self)

    def close(self) -> List[CapturedWarning]:
        """Stop capturing and hand the captured warnings to the parent scope."""
        with self._lock:
            if self.closed:
                return list(self.items)
            self.closed = True
            items = list(self.items)
        if self.parent is not None:
            self.parent._absorb(items)
        return items

    def _absorb(self, items: List[CapturedWarning]) -> None:
        with self._lock:
            if not self.closed:
                self.items.extend(items)

    @property
    def messages(self) -> List[str]:
        return [w.message for w in self.items]

    def __enter__(self) -> "WarningScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class WarningCollector(WarningScope):
    """Root warning sink for a whole run."""

    def __init__(self):
        super().__init__("run")

    def scope(self, name: str) -> WarningScope:
        return self.child(name)


class Toolkit:
    """Path matcher, scanner, and resolver built from one configuration."""

    def __init__(
        self,
        config: CheckerConfig,
        matcher: PathMatcher,
        scanner: ContextAwareScanner,
        resolver: SeverityResolver,
    ):
        self.config = config
        self.matcher = matcher
        self.scanner = scanner
        self.resolver = resolver
        self._files: Optional[List[Path]] = None
        self._scan_subset: Optional[List[Path]] = None
        self._issues: Optional[List[Issue]] = None
        self._scan_warnings: List[str] = []
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: CheckerConfig, is_tool_path: Optional[Callable[[str], bool]] = None) -> "Toolkit":
        matcher = PathMatcher(
            base_dir=config.root,
            exclude=config.exclude,
            include=config.include,
            exclude_patterns=config.exclude_patterns.as_dict(),
            context=config.context or config.profile or "default",
            include_dotfiles=config.include_dotfiles,
            is_tool_path=is_tool_path,
        )
        matcher.add_pattern(config.cache_file)
        rules = load_rules(config.rules) if config.rules else None
        scanner = ContextAwareScanner(
            rules=rules,
            recognizer=SafePatternRecognizer.from_config(config.safe_patterns),
            strict_mode=config.strict_mode,
        )
        resolver = SeverityResolver(
            warning_levels=config.warning_levels_data(),
            known_issues=config.known_issues_data(),
            environment=config.environment,
            strict_mode=config.strict_mode,
            fail_on_warning=config.fail_on_warning,
        )
        return cls(config, matcher, scanner, resolver)

    def files(self) -> List[Path]:
        """Non-excluded files of the extension tree."""
        with self._lock:
            if self._files is None:
                self._files = list(self.matcher.walk()) if self.config.root.is_dir() else []
            return list(self._files)

    def restrict_to(self, files: List[Path]) -> None:
        """Limit source scanning to ``files`` (incremental runs). ``files()`` still lists the whole tree."""
        root = self.matcher.base_dir
        subset = []
        for f in files:
            p = Path(f)
            p = p if p.is_absolute() else root / p
            if p.is_file() and not self.matcher.should_exclude(p):
                subset.append(p)
        with self._lock:
            self._scan_subset = subset
            self._issues = None

    def reset(self) -> None:
        """Drop cached results and any scan restriction so the tree is read again."""
        with self._lock:
            self._files = None
            self._scan_subset = None
            self._issues = None
            self._scan_warnings = []

    def raw_issues(self) -> List[Issue]:
        """Scanner output for the scanned files, computed once."""
        files = self.files()
        with self._lock:
            if self._scan_subset is not None:
                files = list(self._scan_subset)
            if self._issues is None:
                warnings = _ListSink()
                self._issues = self.scanner.scan_files(files, self.matcher.base_dir, warnings)
                self._scan_warnings = warnings.messages
            return list(self._issues)

    def scan_warnings(self) -> List[str]:
        self.raw_issues()
        return list(self._scan_warnings)

    def issues(self, *types: str) -> List[Issue]:
        """Resolved issues, optionally limited to the given types."""
        raw = self.raw_issues()
        if types:
            raw = [i for i in raw if i.type in types]
        ctx = ResolveContext(environment=self.config.environment, strict_mode=self.config.strict_mode)
        return self.resolver.classify(raw, ctx)


class _ListSink:
    def __init__(self):
        self.messages: List[str] = []

    def warn(self, message: str, source: Optional[str] = None, **data: Any) -> None:
        self.messages.append(message)


@dataclass
class CheckContext:
    """Argument passed to every check function."""
    config: CheckerConfig
    toolkit: Toolkit
    warnings: WarningScope
    suite: Any = None

    @property
    def root(self) -> Path:
        return self.config.root

    def warn(self, message: str, **data: Any) -> None:
        self.warnings.warn(message, source=getattr(self.suite, "name", None), **data)
