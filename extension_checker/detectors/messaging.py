"""
Message passing checks.
"""

from ..detector_base import BaseDetector
from ..safe_patterns import MESSAGE_HANDLER


class MessagingDetector(BaseDetector):
    """Listeners for external messages accept input from other extensions and pages."""

    kind = MESSAGE_HANDLER

    def _assess(self) -> str:
        if "onMessageExternal" in self.candidate.match_text:
            return "high"
        return self.rule.severity
