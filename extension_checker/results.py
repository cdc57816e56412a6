"""
Result models for runs, suites, and cases.

``to_dict`` produces the JSON structure consumed by report renderers
(camelCase keys); ``from_dict`` reads it back, e.g. from a worker process.
"""

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .issue import Severity

PASSED = "passed"
FAILED = "failed"
SKIPPED = "skipped"


def error_info(exc: BaseException) -> Dict[str, Any]:
    """Serializable description of an exception."""
    info: Dict[str, Any] = {
        "name": type(exc).__name__,
        "message": str(getattr(exc, "message", None) or exc) or type(exc).__name__,
        "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }
    code = getattr(exc, "code", None)
    if isinstance(code, str):
        info["code"] = code
    details = getattr(exc, "details", None)
    if details:
        info["details"] = details
    suggestion = getattr(exc, "suggestion", None)
    if suggestion:
        info["suggestion"] = suggestion
    return info


@dataclass
class CaseResult:
    name: str
    status: str
    duration: float = 0.0
    error: Optional[Dict[str, Any]] = None
    severity: Severity = Severity.ERROR
    skip_reason: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status == PASSED

    @property
    def failed(self) -> bool:
        return self.status == FAILED

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "status": self.status,
            "duration": round(self.duration, 6),
            "severity": self.severity.value,
        }
        if self.error:
            data["error"] = self.error
        if self.skip_reason:
            data["skipReason"] = self.skip_reason
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaseResult":
        return cls(
            name=data["name"],
            status=data["status"],
            duration=float(data.get("duration", 0.0)),
            error=data.get("error"),
            severity=Severity.parse(data.get("severity", "ERROR")),
            skip_reason=data.get("skipReason"),
        )


@dataclass
class SuiteResult:
    name: str
    tests: List[CaseResult] = field(default_factory=list)
    category: Optional[str] = None
    description: str = ""
    warnings: List[str] = field(default_factory=list)
    duration: float = 0.0
    error: Optional[Dict[str, Any]] = None

    def count(self, status: str) -> int:
        return sum(1 for t in self.tests if t.status == status)

    @property
    def passed(self) -> int:
        return self.count(PASSED)

    @property
    def failed(self) -> int:
        return self.count(FAILED)

    @property
    def skipped(self) -> int:
        return self.count(SKIPPED)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "tests": [t.to_dict() for t in self.tests],
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "warnings": list(self.warnings),
            "duration": round(self.duration, 6),
        }
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SuiteResult":
        return cls(
            name=data["name"],
            tests=[CaseResult.from_dict(t) for t in data.get("tests", [])],
            category=data.get("category"),
            description=data.get("description", ""),
            warnings=list(data.get("warnings", [])),
            duration=float(data.get("duration", 0.0)),
            error=data.get("error"),
        )


@dataclass
class RunSummary:
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    success_rate: int = 0
    warning_count: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "successRate": self.success_rate,
            "warningCount": self.warning_count,
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunSummary":
        return cls(
            total=int(data.get("total", 0)),
            passed=int(data.get("passed", 0)),
            failed=int(data.get("failed", 0)),
            skipped=int(data.get("skipped", 0)),
            success_rate=int(data.get("successRate", 0)),
            warning_count=int(data.get("warningCount", 0)),
            errors=list(data.get("errors", [])),
        )


def success_rate(passed: int, total: int) -> int:
    """Rounded percentage; 0 when nothing ran."""
    if total <= 0:
        return 0
    return int(round(passed / total * 100))


def compute_summary(suites: List[SuiteResult], warnings: Optional[List[str]] = None) -> RunSummary:
    summary = RunSummary()
    for suite in suites:
        for case in suite.tests:
            summary.total += 1
            if case.status == PASSED:
                summary.passed += 1
            elif case.status == FAILED:
                summary.failed += 1
                summary.errors.append({
                    "suite": suite.name,
                    "test": case.name,
                    "message": (case.error or {}).get("message", "failed"),
                })
            else:
                summary.skipped += 1
    summary.success_rate = success_rate(summary.passed, summary.total)
    if warnings is None:
        warnings = [w for s in suites for w in s.warnings]
    summary.warning_count = len(warnings)
    return summary


@dataclass
class RunResult:
    suites: List[SuiteResult] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)
    warnings: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    duration: float = 0.0
    mode: str = "full"
    reason: Optional[str] = None

    @classmethod
    def build(cls, suites: List[SuiteResult], extra_warnings: Optional[List[str]] = None, **kwargs: Any) -> "RunResult":
        warnings = [w for s in suites for w in s.warnings] + list(extra_warnings or [])
        return cls(suites=suites, summary=compute_summary(suites, warnings), warnings=warnings, **kwargs)

    def failed_cases(self) -> List[CaseResult]:
        return [c for s in self.suites for c in s.tests if c.failed]

    def exit_code(self, fail_on_error: bool = True, fail_on_warning: bool = False) -> int:
        """0 on success; 1 for a failed ERROR-level case, or any warning-level outcome when failing on warnings."""
        for case in self.failed_cases():
            if case.severity == Severity.ERROR and fail_on_error:
                return 1
            if case.severity == Severity.WARNING and fail_on_warning:
                return 1
        if fail_on_warning and self.warnings:
            return 1
        return 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suites": [s.to_dict() for s in self.suites],
            "summary": self.summary.to_dict(),
            "warnings": list(self.warnings),
            "timestamp": self.timestamp,
            "duration": round(self.duration, 6),
            "mode": self.mode,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunResult":
        return cls(
            suites=[SuiteResult.from_dict(s) for s in data.get("suites", [])],
            summary=RunSummary.from_dict(data.get("summary", {})),
            warnings=list(data.get("warnings", [])),
            timestamp=data.get("timestamp", ""),
            duration=float(data.get("duration", 0.0)),
            mode=data.get("mode", "full"),
            reason=data.get("reason"),
        )
