"""
HTML sink checks (innerHTML, outerHTML, document.write).
"""

import re

from ..detector_base import BaseDetector
from ..safe_patterns import SINK_ASSIGNMENT

_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*$")
_STRING_LITERAL = re.compile(r"""^(['"`]).*\1$""", re.DOTALL)
_SANITIZER = re.compile(r"DOMPurify|sanitize|purify", re.IGNORECASE)


class SinkAssignmentDetector(BaseDetector):
    """Grades assignments to markup sinks by what is being assigned."""

    kind = SINK_ASSIGNMENT

    def _assess(self) -> str:
        value = (self.candidate.assigned_value or "").strip()
        if not self.rule.assignment:
            return self.rule.severity

        if self.extension_context == "content":
            # Page-controlled data flows into content scripts.
            if "${" in value or _IDENTIFIER.match(value):
                return "high"

        if "chrome.i18n.getMessage" in value:
            return self._ignore()
        if "${" in value:
            return "high"
        if _IDENTIFIER.match(value):
            return "high"
        if "(" in value and ")" in value:
            if _SANITIZER.search(value):
                return self._ignore()
            return "medium"
        if _STRING_LITERAL.match(value):
            return "low"
        return "medium"
