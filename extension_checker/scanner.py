"""
Context-aware scanner: runs rule patterns over file text, drops matches inside
comments and string literals, and grades the survivors.

Comment/string detection is a single linear lexer pass per file. It is
best-effort (regex literals and nested template expressions are not parsed);
pass a different ``mask_factory`` where exactness matters.
"""

import bisect
import logging
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .detector_base import BaseDetector
from .detectors import default_detectors
from .errors import ScanError
from .issue import IGNORE, Candidate, Issue
from .path_matcher import PathMatcher
from .rules import DEFAULT_RULES, Rule
from .safe_patterns import SafePatternRecognizer, context_window
from .utils import (
    MARKUP_EXTENSIONS,
    SCRIPT_EXTENSIONS,
    STYLE_EXTENSIONS,
    analyze_extension_context,
    line_at,
    line_starts,
    offset_to_line_col,
    to_posix,
)

logger = logging.getLogger(__name__)

Span = Tuple[int, int]

_JS_TOKEN = re.compile(r"//|/\*|['\"`]")
_CSS_TOKEN = re.compile(r"/\*|['\"]")
_STRING_END = {
    "'": re.compile(r"'(?:[^'\\\n]|\\[\s\S])*(?:'|(?=\n)|\Z)"),
    '"': re.compile(r'"(?:[^"\\\n]|\\[\s\S])*(?:"|(?=\n)|\Z)'),
    "`": re.compile(r"`(?:[^`\\]|\\[\s\S])*(?:`|\Z)"),
}
_HTML_COMMENT = re.compile(r"<!--[\s\S]*?(?:-->|\Z)")

MAX_ASSIGNED_VALUE = 500


class ContextMask:
    """Comment and string-literal spans of one file's text."""

    def __init__(self, comments: Sequence[Span] = (), strings: Sequence[Span] = ()):
        self.comments = list(comments)
        self.strings = list(strings)
        self._comment_starts = [s for s, _ in self.comments]
        self._string_starts = [s for s, _ in self.strings]

    @staticmethod
    def _inside(starts: List[int], spans: List[Span], offset: int, inclusive_start: bool) -> bool:
        idx = bisect.bisect_right(starts, offset) - 1
        if idx < 0:
            return False
        start, end = spans[idx]
        if inclusive_start:
            return start <= offset < end
        return start < offset < end

    def in_comment(self, offset: int) -> bool:
        return self._inside(self._comment_starts, self.comments, offset, True)

    def in_string(self, offset: int) -> bool:
        """True past the opening quote and before the end of the literal."""
        return self._inside(self._string_starts, self.strings, offset, False)

    def excludes(self, offset: int) -> bool:
        return self.in_comment(offset) or self.in_string(offset)

    @classmethod
    def for_script(cls, text: str) -> "ContextMask":
        return cls(*_lex(text, _JS_TOKEN))

    @classmethod
    def for_style(cls, text: str) -> "ContextMask":
        return cls(*_lex(text, _CSS_TOKEN))

    @classmethod
    def for_markup(cls, text: str) -> "ContextMask":
        return cls([m.span() for m in _HTML_COMMENT.finditer(text)])


def _lex(text: str, token: re.Pattern) -> Tuple[List[Span], List[Span]]:
    comments: List[Span] = []
    strings: List[Span] = []
    n = len(text)
    pos = 0
    while pos < n:
        m = token.search(text, pos)
        if not m:
            break
        tok = m.group()
        start = m.start()
        if tok == "//":
            end = text.find("\n", start)
            end = n if end == -1 else end
            comments.append((start, end))
        elif tok == "/*":
            end = text.find("*/", start + 2)
            end = n if end == -1 else end + 2
            comments.append((start, end))
        else:
            lit = _STRING_END[tok].match(text, start)
            end = lit.end() if lit else n
            strings.append((start, end))
        pos = max(end, start + 1)
    return comments, strings


def default_mask(content: str, file_path: str) -> ContextMask:
    """Pick the lexer by file extension; unknown types get an empty mask."""
    name = file_path.lower()
    if name.endswith(SCRIPT_EXTENSIONS):
        return ContextMask.for_script(content)
    if name.endswith(MARKUP_EXTENSIONS):
        return ContextMask.for_markup(content)
    if name.endswith(STYLE_EXTENSIONS):
        return ContextMask.for_style(content)
    return ContextMask()


def extract_assigned_value(content: str, start: int) -> str:
    """Right-hand side text from ``start`` up to the statement end at bracket depth 0."""
    depth = 0
    quote = None
    i = start
    n = len(content)
    while i < n and i - start < MAX_ASSIGNED_VALUE:
        c = content[i]
        if quote:
            if c == "\\":
                i += 2
                continue
            if c == quote:
                quote = None
            elif c == "\n" and quote != "`":
                break
        elif c in "'\"`":
            quote = c
        elif c in "([{":
            depth += 1
        elif c in ")]}":
            if depth == 0:
                break
            depth -= 1
        elif c in ";\n" and depth == 0:
            break
        i += 1
    return content[start:i].strip()


def _format_message(rule: Rule, match: re.Match) -> str:
    message = rule.message or f"Matched rule {rule.name}"
    if "{method}" in message and match.groups():
        message = message.replace("{method}", match.group(1) or "")
    return message


class ContextAwareScanner:
    """Finds rule matches outside comments and strings and turns them into Issues."""

    def __init__(
        self,
        rules: Optional[Iterable[Rule]] = None,
        recognizer: Optional[SafePatternRecognizer] = None,
        strict_mode: bool = False,
        mask_factory: Callable[[str, str], ContextMask] = default_mask,
        detectors: Optional[Dict[str, BaseDetector]] = None,
    ):
        self.rules: List[Rule] = list(DEFAULT_RULES if rules is None else rules)
        self.recognizer = recognizer or SafePatternRecognizer()
        self.strict_mode = strict_mode
        self.mask_factory = mask_factory
        self.detectors = detectors or default_detectors()
        self._fallback = BaseDetector()

    def rules_for(self, file_path: str) -> List[Rule]:
        return [r for r in self.rules if r.applies(file_path)]

    def detect(self, content: str, file_path: str, rule_names: Optional[Iterable[str]] = None) -> List[Issue]:
        """All issues in ``content``. Pure: depends only on the arguments and loaded rules."""
        label = to_posix(file_path)
        rules = self.rules_for(label)
        if rule_names is not None:
            wanted = set(rule_names)
            rules = [r for r in rules if r.name in wanted]
        if not rules or not content:
            return []

        mask = self.mask_factory(content, label)
        starts = line_starts(content)
        extension_context = analyze_extension_context(label)
        issues: List[Issue] = []

        for rule in rules:
            detector = self.detectors.get(rule.kind, self._fallback)
            for match in rule.pattern.finditer(content):
                offset = match.start()
                if mask.excludes(offset):
                    continue
                line, column = offset_to_line_col(starts, offset)
                assigned = extract_assigned_value(content, match.end()) if rule.assignment else None
                candidate = Candidate(
                    rule=rule.name,
                    offset=offset,
                    end=match.end(),
                    line=line,
                    column=column,
                    match_text=match.group(0),
                    assigned_value=assigned,
                    context_window=context_window(content, offset),
                    context_data={"method": match.group(1)} if match.groups() else {},
                )
                if not self.strict_mode and self.recognizer.is_safe(rule.kind, assigned, candidate.context_window):
                    continue
                raw = detector.assess(candidate, rule, label, content, extension_context)
                if raw == IGNORE:
                    continue
                issues.append(Issue(
                    type=rule.name,
                    file=label,
                    line=line,
                    column=column,
                    severity=raw,
                    message=_format_message(rule, match),
                    context=line_at(content, offset).strip(),
                    suggestion=rule.suggestion,
                    assigned_value=assigned,
                    extension_context=extension_context,
                ))

        issues.sort(key=lambda i: (i.line, i.column or 0, i.type))
        return issues

    def read_text(self, path: Union[str, Path]) -> str:
        """Decode a file as UTF-8 text. Raises ScanError for unreadable or binary files."""
        p = Path(path)
        try:
            data = p.read_bytes()
        except OSError as e:
            raise ScanError(f"Could not read file: {e}", str(p)) from e
        if b"\x00" in data:
            raise ScanError("Binary file skipped", str(p))
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ScanError(f"File is not valid UTF-8: {e.reason}", str(p)) from e

    def scan_file(self, path: Union[str, Path], relative_to: Optional[Union[str, Path]] = None) -> List[Issue]:
        p = Path(path)
        label = to_posix(p)
        if relative_to is not None:
            try:
                label = to_posix(p.resolve().relative_to(Path(relative_to).resolve()))
            except ValueError:
                pass
        return self.detect(self.read_text(p), label)

    def scan_files(
        self,
        paths: Iterable[Union[str, Path]],
        base_dir: Optional[Union[str, Path]] = None,
        warnings=None,
    ) -> List[Issue]:
        """Scan many files. Unscannable files are skipped with a warning."""
        issues: List[Issue] = []
        for path in paths:
            if not self.rules_for(to_posix(path)):
                continue
            try:
                issues.extend(self.scan_file(path, base_dir))
            except ScanError as e:
                logger.warning("Skipping %s: %s", path, e.message)
                if warnings is not None:
                    warnings.warn(f"Skipped {e.file_path}: {e.message}", source="scanner")
        return issues

    def scan_tree(self, matcher: PathMatcher, warnings=None) -> List[Issue]:
        """Scan every file the matcher lets through."""
        return self.scan_files(matcher.walk(), matcher.base_dir, warnings)
