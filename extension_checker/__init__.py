"""
Extension Checker - rule-based static analysis and test runner for browser extensions.
"""

from .case import TestCase
from .config import CheckerConfig, load_config
from .errors import (
    CacheError,
    CaseTimeoutError,
    CheckerError,
    ConfigError,
    ExtensionNotFoundError,
    PerformanceError,
    ScanError,
    SecurityError,
    StructureError,
    ValidationError,
)
from .incremental import IncrementalTracker, Targets
from .issue import Issue, Severity
from .logging_config import get_logger, setup_logging
from .main_checker import ExtensionChecker
from .path_matcher import PathMatcher
from .results import CaseResult, RunResult, RunSummary, SuiteResult
from .runner import TestRunner
from .safe_patterns import SafePatternRecognizer
from .scanner import ContextAwareScanner
from .severity import SeverityResolver
from .suite import TestSuite

__version__ = "0.1.0"

__all__ = [
    "CacheError",
    "CaseResult",
    "CaseTimeoutError",
    "CheckerConfig",
    "CheckerError",
    "ConfigError",
    "ContextAwareScanner",
    "ExtensionChecker",
    "ExtensionNotFoundError",
    "IncrementalTracker",
    "Issue",
    "PathMatcher",
    "PerformanceError",
    "RunResult",
    "RunSummary",
    "SafePatternRecognizer",
    "ScanError",
    "SecurityError",
    "Severity",
    "SeverityResolver",
    "StructureError",
    "SuiteResult",
    "Targets",
    "TestCase",
    "TestRunner",
    "TestSuite",
    "ValidationError",
    "get_logger",
    "load_config",
    "setup_logging",
]
