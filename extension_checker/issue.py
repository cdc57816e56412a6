"""
Issue data models for the extension checker.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Union


class Severity(Enum):
    """Issue severity levels, ordered by priority."""
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def priority(self) -> int:
        return _PRIORITY[self.value]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.priority < other.priority

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.priority <= other.priority

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.priority > other.priority

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.priority >= other.priority

    @classmethod
    def parse(cls, value: str) -> "Severity":
        """Parse a level name case-insensitively. Raises ValueError on unknown names."""
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown severity level: {value!r}") from None


_PRIORITY = {"ERROR": 3, "WARNING": 2, "INFO": 1}

IGNORE = "ignore"

# Five-level rule severities collapse onto the three resolved levels.
LEGACY_SEVERITY: Dict[str, Optional[Severity]] = {
    "critical": Severity.ERROR,
    "high": Severity.ERROR,
    "medium": Severity.WARNING,
    "low": Severity.INFO,
    "info": Severity.INFO,
    IGNORE: None,
}


def normalize_severity(value: Union[str, Severity, None]) -> Optional[Severity]:
    """Map a raw or resolved severity onto Severity. None means the issue is ignored."""
    if isinstance(value, Severity):
        return value
    if value is None:
        return None
    key = str(value).strip().lower()
    if key in LEGACY_SEVERITY:
        return LEGACY_SEVERITY[key]
    return Severity.parse(key)


@dataclass(frozen=True)
class Issue:
    """A single detected problem at a file location."""
    type: str
    file: str
    line: int
    severity: Union[str, Severity]
    message: str
    column: Optional[int] = None
    context: str = ""
    suggestion: Optional[str] = None
    assigned_value: Optional[str] = None
    extension_context: Optional[str] = None
    reason: Optional[str] = None

    @property
    def level(self) -> Optional[Severity]:
        """Resolved level when severity is already a Severity, else the legacy collapse."""
        return normalize_severity(self.severity)

    def with_severity(self, severity: Severity, reason: Optional[str] = None) -> "Issue":
        """Copy of this issue carrying a resolved severity."""
        return replace(self, severity=severity, reason=reason if reason is not None else self.reason)

    def to_dict(self) -> Dict[str, Any]:
        sev = self.severity.value if isinstance(self.severity, Severity) else self.severity
        data: Dict[str, Any] = {
            "type": self.type,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "severity": sev,
            "message": self.message,
            "context": self.context,
        }
        if self.suggestion:
            data["suggestion"] = self.suggestion
        if self.assigned_value is not None:
            data["assignedValue"] = self.assigned_value
        if self.extension_context:
            data["extensionContext"] = self.extension_context
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class Candidate:
    """A pattern match awaiting context filtering before it becomes an Issue."""
    rule: str
    offset: int
    end: int
    line: int
    column: int
    match_text: str
    assigned_value: Optional[str] = None
    context_window: str = ""
    context_data: Dict[str, Any] = field(default_factory=dict)
