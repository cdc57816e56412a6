"""
Ambient storage checks.
"""

from ..detector_base import BaseDetector
from ..safe_patterns import STORAGE


class StorageDetector(BaseDetector):
    """Grades localStorage usage by where it runs."""

    kind = STORAGE

    def _assess(self) -> str:
        path = self.file_path.lower()
        if "test" in path or "spec" in path:
            return self._ignore()
        # Service workers have no localStorage; content scripts share the page's.
        if self.extension_context in ("background", "content"):
            return "high"
        if self._is_debug_guarded() or self._in_try_block():
            return "low"
        return "medium"
