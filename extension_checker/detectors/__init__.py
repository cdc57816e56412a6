"""
Detectors package: per-kind grading of scanner matches.
"""

from typing import Dict

from ..detector_base import BaseDetector
from .console import ConsoleDetector
from .dynamic_code import DynamicCodeDetector
from .messaging import MessagingDetector
from .sink import SinkAssignmentDetector
from .storage import StorageDetector


def default_detectors() -> Dict[str, BaseDetector]:
    """Fresh detector instances keyed by usage kind."""
    detectors = [
        SinkAssignmentDetector(),
        StorageDetector(),
        ConsoleDetector(),
        DynamicCodeDetector(),
        MessagingDetector(),
        BaseDetector(),
    ]
    return {d.kind: d for d in detectors}


__all__ = [
    'BaseDetector',
    'ConsoleDetector',
    'DynamicCodeDetector',
    'MessagingDetector',
    'SinkAssignmentDetector',
    'StorageDetector',
    'default_detectors',
]
