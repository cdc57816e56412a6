"""
Rule catalog consumed by the context-aware scanner.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Tuple

from .errors import ConfigError
from .issue import LEGACY_SEVERITY
from .safe_patterns import CONSOLE, DYNAMIC_EVAL, MESSAGE_HANDLER, SINK_ASSIGNMENT, STORAGE
from .utils import MARKUP_EXTENSIONS, SCRIPT_EXTENSIONS

GENERIC = "generic"


@dataclass(frozen=True)
class Rule:
    """One pattern rule. ``kind`` selects the detector that grades its matches."""
    name: str
    pattern: Pattern
    severity: str = "medium"
    applies_to: Tuple[str, ...] = SCRIPT_EXTENSIONS
    kind: str = GENERIC
    message: str = ""
    suggestion: Optional[str] = None
    assignment: bool = False

    def applies(self, file_path: str) -> bool:
        name = file_path.lower()
        return not self.applies_to or name.endswith(tuple(e.lower() for e in self.applies_to))


def _rule(name, regex, severity, kind=GENERIC, message="", suggestion=None, applies_to=SCRIPT_EXTENSIONS, assignment=False, flags=0):
    return Rule(name, re.compile(regex, flags), severity, tuple(applies_to), kind, message, suggestion, assignment)


DEFAULT_RULES: Tuple[Rule, ...] = (
    _rule(
        "unsafe-innerHTML", r"\.innerHTML\s*(?:\+)?=(?!=)\s*", "high", SINK_ASSIGNMENT,
        "Assignment to innerHTML with dynamic content",
        "Use textContent, or sanitize with DOMPurify.sanitize() before assigning",
        assignment=True,
    ),
    _rule(
        "unsafe-outerHTML", r"\.outerHTML\s*(?:\+)?=(?!=)\s*", "high", SINK_ASSIGNMENT,
        "Assignment to outerHTML with dynamic content",
        "Build nodes with document.createElement() instead",
        assignment=True,
    ),
    _rule(
        "document-write", r"\bdocument\.write(?:ln)?\s*\(", "high", SINK_ASSIGNMENT,
        "document.write() injects unparsed markup",
        "Insert elements through DOM APIs",
    ),
    _rule(
        "eval", r"(?<![\w$.])eval\s*\(", "critical", DYNAMIC_EVAL,
        "eval() executes arbitrary code and is blocked by Manifest V3 CSP",
        "Use JSON.parse() for data or restructure the logic",
    ),
    _rule(
        "function-constructor", r"\bnew\s+Function\s*\(", "critical", DYNAMIC_EVAL,
        "new Function() is equivalent to eval()",
        "Replace dynamic code generation with static functions",
    ),
    _rule(
        "string-timer", r"\b(?:setTimeout|setInterval)\s*\(\s*['\"`]", "high", DYNAMIC_EVAL,
        "Timer called with a code string",
        "Pass a function to setTimeout/setInterval",
    ),
    _rule(
        "localStorage", r"\blocalStorage\s*(?:\.\s*(?:setItem|getItem|removeItem|clear)\s*\(|\[)", "medium", STORAGE,
        "localStorage is unavailable in service workers and is not synced",
        "Use chrome.storage.local or chrome.storage.sync",
    ),
    _rule(
        "console", r"\bconsole\.(log|debug|info|warn|error|trace)\s*\(", "low", CONSOLE,
        "console.{method}() left in extension code",
        "Remove debug logging or guard it behind a DEBUG flag",
    ),
    _rule(
        "unsafe-message-passing", r"\bchrome\.runtime\.onMessage(?:External)?\.addListener\s*\(", "medium", MESSAGE_HANDLER,
        "Message listener does not verify the sender",
        "Check sender.id === chrome.runtime.id or sender.tab before acting on messages",
    ),
    _rule(
        "hardcoded-secret",
        r"""['"]?\b(?:api[_-]?key|apikey|secret|client[_-]?secret|access[_-]?token|auth[_-]?token|password)\b['"]?\s*[:=]\s*['"][A-Za-z0-9_\-./+=]{8,}['"]""",
        "critical", GENERIC,
        "Hardcoded credential in source",
        "Load secrets at runtime from chrome.storage or a backend service",
        applies_to=SCRIPT_EXTENSIONS + (".json",),
        flags=re.IGNORECASE,
    ),
    _rule(
        "inline-script", r"<script(?![^>]*\bsrc\s*=)[^>]*>\s*\S", "high", GENERIC,
        "Inline <script> is blocked by the extension CSP",
        "Move the script into a separate file and reference it with src",
        applies_to=MARKUP_EXTENSIONS,
        flags=re.IGNORECASE,
    ),
)


def default_rules() -> List[Rule]:
    return list(DEFAULT_RULES)


def load_rules(entries: Iterable[Mapping[str, Any]], base: Optional[Iterable[Rule]] = None) -> List[Rule]:
    """
    Build rules from configuration data.

    Entries replace a base rule of the same name and are appended otherwise.
    Raises ConfigError listing every invalid entry.
    """
    rules: Dict[str, Rule] = {r.name: r for r in (DEFAULT_RULES if base is None else base)}
    errors: List[str] = []
    for i, entry in enumerate(entries):
        name = entry.get("name")
        if not name:
            errors.append(f"rules[{i}]: 'name' is required")
            continue
        try:
            pattern = re.compile(entry["pattern"], re.IGNORECASE if entry.get("ignoreCase") else 0)
        except KeyError:
            errors.append(f"rules[{i}] ({name}): 'pattern' is required")
            continue
        except re.error as e:
            errors.append(f"rules[{i}] ({name}): invalid pattern: {e}")
            continue
        severity = str(entry.get("severity", "medium")).lower()
        if severity not in LEGACY_SEVERITY and severity.upper() not in ("ERROR", "WARNING", "INFO"):
            errors.append(f"rules[{i}] ({name}): unknown severity {severity!r}")
            continue
        applies = entry.get("appliesToExtension", entry.get("applies_to", SCRIPT_EXTENSIONS))
        if isinstance(applies, str):
            applies = (applies,)
        rules[name] = Rule(
            name=name,
            pattern=pattern,
            severity=severity,
            applies_to=tuple(applies),
            kind=entry.get("kind", GENERIC),
            message=entry.get("message", f"Matched rule {name}"),
            suggestion=entry.get("suggestion"),
            assignment=bool(entry.get("assignment", False)),
        )
    if errors:
        raise ConfigError("Invalid rule definitions", errors=errors)
    return list(rules.values())
