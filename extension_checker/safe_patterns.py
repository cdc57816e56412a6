"""
Known-safe code shapes that suppress otherwise matched issues.

Each usage kind keeps an open list of regexes. A pattern targets either the
extracted assigned value or the context window around the match site; one
matching pattern is enough to call the usage safe.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Union

logger = logging.getLogger(__name__)

SINK_ASSIGNMENT = "sink-assignment"
STORAGE = "storage"
DYNAMIC_EVAL = "dynamic-eval"
MESSAGE_HANDLER = "message-handler"
CONSOLE = "console"

TARGET_VALUE = "value"
TARGET_CONTEXT = "context"

CONTEXT_BEFORE = 100
CONTEXT_AFTER = 200


@dataclass(frozen=True)
class SafePattern:
    kind: str
    pattern: Pattern
    target: str = TARGET_VALUE
    description: str = ""

    def matches(self, value: str, context: str) -> bool:
        text = value if self.target == TARGET_VALUE else context
        return bool(text) and self.pattern.search(text) is not None


def _p(kind: str, regex: str, target: str, description: str, flags: int = 0) -> SafePattern:
    return SafePattern(kind, re.compile(regex, flags), target, description)


DEFAULT_SAFE_PATTERNS = (
    # Sink assignments: judged on the right-hand side only.
    _p(SINK_ASSIGNMENT, r"\bDOMPurify\.sanitize\s*\(", TARGET_VALUE, "DOMPurify sanitizer"),
    _p(SINK_ASSIGNMENT, r"\bsanitize(?:HTML|Html)\s*\(", TARGET_VALUE, "sanitizer helper"),
    _p(SINK_ASSIGNMENT, r"\b(?:purify|escapeHTML|escapeHtml)\s*\(", TARGET_VALUE, "escaping helper"),
    _p(SINK_ASSIGNMENT, r"\bchrome\.i18n\.getMessage\s*\(", TARGET_VALUE, "platform i18n"),
    _p(SINK_ASSIGNMENT, r"""^\s*(['"])(?:\\.|(?!\1)[^\\\n])*\1\s*$""", TARGET_VALUE, "constant string literal"),
    _p(SINK_ASSIGNMENT, r"^\s*`[^`$]*`\s*$", TARGET_VALUE, "template without interpolation"),
    # Ambient storage.
    _p(STORAGE, r"//\s*TODO:?\s*migrate\s*to\s*chrome\.storage", TARGET_CONTEXT, "migration marker", re.IGNORECASE),
    _p(STORAGE, r"//\s*DEPRECATED:?\s*use\s*chrome\.storage", TARGET_CONTEXT, "deprecation marker", re.IGNORECASE),
    _p(STORAGE, r"""localStorage\.setItem\s*\(\s*['"](?:temp_|cache_)""", TARGET_CONTEXT, "temporary key"),
    _p(STORAGE, r"if\s*\(\s*(?:DEBUG|DEV|DEVELOPMENT)\s*\)\s*\{[^}]*localStorage", TARGET_CONTEXT, "debug guard"),
    _p(STORAGE, r"console\.\w+\s*\([^;\n]*localStorage\.getItem", TARGET_CONTEXT, "logged read"),
    # Dynamic code.
    _p(DYNAMIC_EVAL, r"try\s*\{\s*[^}]*JSON\.parse[\s\S]*catch[\s\S]*eval\s*\(", TARGET_CONTEXT, "JSON.parse fallback"),
    _p(DYNAMIC_EVAL, r"if\s*\(\s*chrome\.devtools\s*\)", TARGET_CONTEXT, "devtools guard"),
    _p(DYNAMIC_EVAL, r"""if\s*\(\s*process\.env\.NODE_ENV\s*===?\s*['"]test['"]\s*\)""", TARGET_CONTEXT, "test guard"),
    # Message handlers.
    _p(MESSAGE_HANDLER, r"if\s*\(\s*!?\s*sender\.tab\s*\)", TARGET_CONTEXT, "tab sender check"),
    _p(MESSAGE_HANDLER, r"sender\.id\s*!?===?\s*chrome\.runtime\.id", TARGET_CONTEXT, "extension id check"),
    _p(MESSAGE_HANDLER, r"""sender\.origin\s*!?===?\s*['"`]chrome-extension://""", TARGET_CONTEXT, "origin check"),
    _p(MESSAGE_HANDLER, r"sender\.url\.startsWith\s*\(\s*chrome\.runtime\.getURL", TARGET_CONTEXT, "url check"),
    _p(MESSAGE_HANDLER, r"switch\s*\(\s*(?:message|msg|request)\.type\s*\)", TARGET_CONTEXT, "typed dispatch"),
    _p(MESSAGE_HANDLER, r"if\s*\(\s*(?:message|msg|request)\.action\s*===", TARGET_CONTEXT, "action dispatch"),
    # Console.
    _p(CONSOLE, r"//\s*eslint-disable(?:-next)?-line\s+no-console", TARGET_CONTEXT, "lint waiver"),
)


class SafePatternRecognizer:
    """Per-kind allowlist of benign code shapes."""

    def __init__(self, patterns: Iterable[SafePattern] = DEFAULT_SAFE_PATTERNS):
        self._patterns: Dict[str, List[SafePattern]] = {}
        for sp in patterns:
            self._patterns.setdefault(sp.kind, []).append(sp)

    @classmethod
    def from_config(cls, extra: Optional[Mapping[str, Iterable[Union[str, Mapping]]]] = None) -> "SafePatternRecognizer":
        """Default patterns plus ``{kind: [regex | {pattern, target}]}`` entries."""
        recognizer = cls()
        for kind, entries in (extra or {}).items():
            for entry in entries:
                if isinstance(entry, Mapping):
                    recognizer.register(kind, entry["pattern"], entry.get("target", TARGET_VALUE))
                else:
                    recognizer.register(kind, entry, TARGET_CONTEXT)
        return recognizer

    def register(self, kind: str, pattern: Union[str, Pattern], target: str = TARGET_VALUE, description: str = "") -> SafePattern:
        """Add a pattern for ``kind``; new kinds are created on demand."""
        if target not in (TARGET_VALUE, TARGET_CONTEXT):
            raise ValueError(f"target must be '{TARGET_VALUE}' or '{TARGET_CONTEXT}', got {target!r}")
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        sp = SafePattern(kind, compiled, target, description)
        self._patterns.setdefault(kind, []).append(sp)
        return sp

    def kinds(self) -> List[str]:
        return sorted(self._patterns)

    def patterns(self, kind: str) -> List[SafePattern]:
        return list(self._patterns.get(kind, ()))

    def match(self, kind: str, value: Optional[str], context: str = "") -> Optional[SafePattern]:
        """First safe pattern matching the usage, or None."""
        for sp in self._patterns.get(kind, ()):
            if sp.matches(value or "", context or ""):
                return sp
        return None

    def is_safe(self, kind: str, value: Optional[str], context: str = "") -> bool:
        sp = self.match(kind, value, context)
        if sp is not None:
            logger.debug("Suppressed %s usage (%s)", kind, sp.description or sp.pattern.pattern)
            return True
        return False


def context_window(content: str, offset: int, before: int = CONTEXT_BEFORE, after: int = CONTEXT_AFTER) -> str:
    """Source text around ``offset`` used for context-targeted patterns."""
    return content[max(0, offset - before):offset + after]
