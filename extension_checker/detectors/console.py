"""
Console usage checks.
"""

import re

from ..detector_base import BaseDetector
from ..safe_patterns import CONSOLE

_CATCH = re.compile(r"catch\s*(?:\([^)]*\))?\s*\{")
_DEV_FILE = re.compile(r"\.(?:dev|test|spec)\.")


class ConsoleDetector(BaseDetector):
    """Grades console calls; error reporting in handlers is expected."""

    kind = CONSOLE

    def _assess(self) -> str:
        method = self.candidate.context_data.get("method", "log")
        preceding = self._preceding()
        if method == "error" and (_CATCH.search(preceding) or "chrome.runtime.lastError" in preceding):
            return self._ignore()
        if _DEV_FILE.search(self.file_path):
            return self._ignore()
        if self.extension_context == "devtools":
            return self._ignore()
        if self._is_debug_guarded():
            return "low"
        if self.extension_context == "background" and method == "log":
            return "medium"
        if method == "warn":
            return "low"
        return "medium"
