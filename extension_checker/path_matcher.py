"""
Glob-based exclude/include matching for extension source trees.
"""

import logging
import os
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Pattern, Union

from .utils import to_posix

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE = (
    "node_modules/**",
    ".git/**",
    ".gitignore",
    ".npmignore",
    "*.log",
    "*.tmp",
    ".DS_Store",
    "Thumbs.db",
)

# Checked before any glob evaluation.
_FAST_EXCLUDE = (
    re.compile(r"(^|/)node_modules(/|$)"),
    re.compile(r"(^|/)\.git(/|$)"),
)

_NEVER = re.compile(r"(?!)")

PathLike = Union[str, Path]


def _segment_to_regex(segment: str, dot: bool) -> str:
    out = []
    i = 0
    n = len(segment)
    while i < n:
        c = segment[i]
        if c == "*":
            while i + 1 < n and segment[i + 1] == "*":
                i += 1
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            close = segment.find("]", i + 2 if i + 1 < n and segment[i + 1] in "!^" else i + 1)
            if close == -1:
                out.append(re.escape(c))
            else:
                body = segment[i + 1:close]
                if body[:1] in ("!", "^"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\").replace("/", "") + "]")
                i = close
        else:
            out.append(re.escape(c))
        i += 1
    prefix = "" if dot or segment.startswith(".") else r"(?!\.)"
    return prefix + "".join(out)


def glob_to_regex(pattern: str, dot: bool = False) -> Pattern:
    """
    Compile a glob into an anchored regex.

    ``*`` and ``?`` stay within one path segment, ``**`` spans zero or more
    segments, ``[...]`` is a character class. Wildcards skip dot-prefixed
    segments unless ``dot`` is set. A pattern without ``/`` matches the file
    name at any depth. Malformed patterns compile to a regex matching nothing.
    """
    p = to_posix(pattern).strip()
    while p.startswith("./"):
        p = p[2:]
    p = p.lstrip("/")
    if not p:
        return _NEVER
    if p.endswith("/"):
        p += "**"
    if "/" not in p and p != "**":
        p = "**/" + p

    segments: List[str] = []
    for seg in p.split("/"):
        if seg == "" or (seg == "**" and segments and segments[-1] == "**"):
            continue
        segments.append(seg)

    any_seg = r"[^/]+" if dot else r"(?!\.)[^/]+"
    n = len(segments)
    parts: List[str] = []
    slash_pending = False
    for i, seg in enumerate(segments):
        if seg == "**":
            if n == 1:
                parts.append(f"{any_seg}(?:/{any_seg})*")
            elif i == n - 1:
                parts.append(f"(?:/{any_seg})*")
            else:
                if slash_pending:
                    parts.append("/")
                parts.append(f"(?:{any_seg}/)*")
            slash_pending = False
            continue
        if slash_pending:
            parts.append("/")
        parts.append(_segment_to_regex(seg, dot))
        slash_pending = True

    try:
        return re.compile("^" + "".join(parts) + "$")
    except re.error as e:
        logger.debug("Ignoring malformed glob %r: %s", pattern, e)
        return _NEVER


def tool_path_predicate(tool_root: PathLike, scan_root: PathLike) -> Callable[[str], bool]:
    """
    Predicate marking paths inside the checker's own install directory.

    Returns a predicate that never matches when the install directory is the
    scan root itself, so scanning the checker's own tree still works.
    """
    tool = Path(tool_root).resolve()
    scan = Path(scan_root).resolve()
    if tool == scan:
        return lambda _path: False
    prefix = to_posix(tool).rstrip("/") + "/"

    def _is_tool_path(path: str) -> bool:
        return to_posix(Path(path).resolve()).startswith(prefix)

    return _is_tool_path


class PathMatcher:
    """Decides which files of an extension tree participate in scanning."""

    def __init__(
        self,
        base_dir: Optional[PathLike] = None,
        exclude: Optional[Union[str, Iterable[str]]] = None,
        include: Optional[Union[str, Iterable[str]]] = None,
        exclude_patterns: Optional[Dict] = None,
        context: str = "default",
        include_dotfiles: bool = False,
        is_tool_path: Optional[Callable[[str], bool]] = None,
    ):
        self.base_dir = Path(base_dir).resolve() if base_dir else Path.cwd().resolve()
        self.dot = include_dotfiles
        self.is_tool_path = is_tool_path
        self.context = context or "default"

        exclude_patterns = exclude_patterns or {}
        self.directories: List[str] = [to_posix(d).strip("/") for d in exclude_patterns.get("directories") or []]
        self.by_context: Dict[str, List[str]] = {
            k: list(v or []) for k, v in (exclude_patterns.get("byContext") or exclude_patterns.get("by_context") or {}).items()
        }

        self.defaults: List[str] = list(DEFAULT_EXCLUDE)
        self.user_patterns: List[str] = _as_list(exclude)
        self.user_patterns += [f"{d}/**" for d in self.directories]
        self.user_patterns += [to_posix(f) for f in exclude_patterns.get("files") or []]
        self.include_patterns: List[str] = _as_list(include)
        self.context_patterns: List[str] = list(self.by_context.get(self.context, []))

        self._compiled: Dict[str, Pattern] = {}

    # --- patterns ---

    def get_patterns(self) -> List[str]:
        """All active exclude patterns, defaults first."""
        seen = []
        for p in self.defaults + self.user_patterns + self.context_patterns:
            if p not in seen:
                seen.append(p)
        return seen

    def add_pattern(self, pattern: str) -> None:
        if pattern not in self.get_patterns():
            self.user_patterns.append(pattern)

    def remove_pattern(self, pattern: str) -> bool:
        """Remove a user or context pattern. Default patterns stay active."""
        if pattern in self.defaults:
            logger.debug("Default exclude %r cannot be removed", pattern)
            return False
        removed = False
        for bucket in (self.user_patterns, self.context_patterns):
            while pattern in bucket:
                bucket.remove(pattern)
                removed = True
        return removed

    def set_context(self, context: str) -> None:
        """Activate the context-scoped patterns of ``context``, dropping the previous context's."""
        self.context = context
        self.context_patterns = list(self.by_context.get(context, []))

    def _regex(self, pattern: str) -> Pattern:
        rx = self._compiled.get(pattern)
        if rx is None:
            rx = glob_to_regex(pattern, dot=self.dot)
            self._compiled[pattern] = rx
        return rx

    def matches(self, rel_path: str, pattern: str) -> bool:
        return bool(self._regex(pattern).match(rel_path))

    # --- decisions ---

    def relative(self, path: PathLike) -> str:
        """Base-relative posix form of ``path``."""
        raw = to_posix(path)
        if os.path.isabs(raw):
            try:
                return to_posix(Path(raw).resolve().relative_to(self.base_dir))
            except ValueError:
                return raw.lstrip("/")
        while raw.startswith("./"):
            raw = raw[2:]
        return raw

    def _excluded_by_patterns(self, rel: str) -> bool:
        if any(rx.search(rel) for rx in _FAST_EXCLUDE):
            return True
        return any(self.matches(rel, p) for p in self.get_patterns())

    def _tool_owned(self, path: PathLike) -> bool:
        if self.is_tool_path is None:
            return False
        candidate = path if os.path.isabs(str(path)) else self.base_dir / str(path)
        return bool(self.is_tool_path(str(candidate)))

    def should_exclude(self, path: PathLike) -> bool:
        """True if the file does not participate in scanning."""
        rel = self.relative(path)
        if self._excluded_by_patterns(rel) or self._tool_owned(path):
            return True
        if self.include_patterns:
            return not any(self.matches(rel, p) for p in self.include_patterns)
        return False

    def should_exclude_directory(self, path: PathLike) -> bool:
        """True if a directory can be pruned from the walk. Include patterns are not applied."""
        rel = self.relative(path).rstrip("/")
        if not rel or rel == ".":
            return False
        if rel in self.directories or rel.rsplit("/", 1)[-1] in self.directories:
            return True
        return self._excluded_by_patterns(rel) or self._tool_owned(path)

    def filter_files(self, paths: Iterable[PathLike]) -> List[PathLike]:
        return [p for p in paths if not self.should_exclude(p)]

    def walk(self, root: Optional[PathLike] = None) -> Iterator[Path]:
        """Yield non-excluded files under ``root``, pruning excluded directories."""
        top = Path(root).resolve() if root else self.base_dir
        for dirpath, dirnames, filenames in os.walk(top):
            current = Path(dirpath)
            dirnames[:] = sorted(d for d in dirnames if not self.should_exclude_directory(current / d))
            for name in sorted(filenames):
                full = current / name
                if not self.should_exclude(full):
                    yield full

    def get_stats(self, paths: Iterable[PathLike]) -> Dict:
        paths = list(paths)
        stats = {
            "totalFiles": len(paths),
            "includedFiles": 0,
            "excludedFiles": 0,
            "excludedByPattern": {},
        }
        for path in paths:
            if not self.should_exclude(path):
                stats["includedFiles"] += 1
                continue
            stats["excludedFiles"] += 1
            rel = self.relative(path)
            for pattern in self.get_patterns():
                if self.matches(rel, pattern):
                    stats["excludedByPattern"][pattern] = stats["excludedByPattern"].get(pattern, 0) + 1
        return stats


def _as_list(value: Optional[Union[str, Iterable[str]]]) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [to_posix(v) for v in value]
