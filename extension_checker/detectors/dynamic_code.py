"""
Dynamic code execution checks (eval, new Function, string timers).
"""

from ..detector_base import BaseDetector
from ..safe_patterns import DYNAMIC_EVAL
from ..utils import is_test_file


class DynamicCodeDetector(BaseDetector):

    kind = DYNAMIC_EVAL

    def _assess(self) -> str:
        if is_test_file(self.file_path):
            return "low"
        if self.extension_context == "background":
            return "critical"
        return self.rule.severity
