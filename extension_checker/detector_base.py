"""
Base detector class: grades a surviving pattern match with a raw severity.
"""

import re
from typing import Optional

from .issue import IGNORE, Candidate
from .rules import GENERIC, Rule

_DEBUG_GUARD = re.compile(r"if\s*\([^)]*\b(?:DEBUG|DEV|development|isDev|debugMode)\b[^)]*\)")
_TRY_BLOCK = re.compile(r"try\s*\{")


class BaseDetector:
    """Base class for all detectors. Subclasses override ``_assess``."""

    kind = GENERIC

    def __init__(self):
        self.candidate: Optional[Candidate] = None
        self.rule: Optional[Rule] = None
        self.file_path: str = ""
        self.content: str = ""
        self.extension_context: str = "unknown"

    def assess(
        self,
        candidate: Candidate,
        rule: Rule,
        file_path: str,
        content: str,
        extension_context: str = "unknown",
    ) -> str:
        """Raw severity for the candidate, or ``"ignore"`` to drop it."""
        self.candidate = candidate
        self.rule = rule
        self.file_path = file_path
        self.content = content
        self.extension_context = extension_context
        return self._assess()

    def _assess(self) -> str:
        """Override in subclasses to implement grading."""
        return self.rule.severity

    def _preceding(self, span: int = 200) -> str:
        """Source text before the match."""
        start = self.candidate.offset
        return self.content[max(0, start - span):start]

    def _is_debug_guarded(self) -> bool:
        return bool(_DEBUG_GUARD.search(self._preceding()))

    def _in_try_block(self) -> bool:
        return bool(_TRY_BLOCK.search(self._preceding()))

    def _ignore(self) -> str:
        return IGNORE
