"""
Exception hierarchy for the extension checker.

Every error raised by the engine derives from CheckerError so callers (the
runner, the HTTP layer) can fold them into results uniformly.
"""

from typing import Any, Dict, List, Optional


class CheckerError(Exception):
    """Base exception for all extension checker operations."""

    code = "CHECKER_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestion = suggestion
        if code:
            self.code = code

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": type(self).__name__, "code": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        if self.suggestion:
            data["suggestion"] = self.suggestion
        return data


class ConfigError(CheckerError):
    """Raised when configuration fails validation. Blocks the run."""

    code = "CONFIG_ERROR"

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details, suggestion="Fix the listed configuration keys and re-run")
        self.errors = list(errors or [])
        self.warnings = list(warnings or [])

    def __str__(self) -> str:
        if not self.errors:
            return super().__str__()
        return self.message + "\n" + "\n".join(f"  - {e}" for e in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        data["warnings"] = self.warnings
        return data


class ScanError(CheckerError):
    """Raised when a single file cannot be scanned (unreadable, binary, not UTF-8)."""

    code = "SCAN_ERROR"

    def __init__(self, message: str, file_path: Optional[str] = None):
        details = {"file": file_path} if file_path else None
        super().__init__(message, details)
        self.file_path = file_path


class CaseTimeoutError(CheckerError):
    """Synthetic failure recorded when a case exceeds its timeout."""

    code = "TIMEOUT"

    def __init__(self, case_name: str, timeout: float):
        super().__init__(f"Test '{case_name}' timed out after {timeout:g}s")
        self.case_name = case_name
        self.timeout = timeout


class ValidationError(CheckerError):
    """Raised by checks when the extension fails a validation rule."""

    code = "VALIDATION_ERROR"


class SecurityError(ValidationError):
    """A security check failed."""

    code = "SECURITY_ERROR"


class StructureError(ValidationError):
    """A structure check failed."""

    code = "STRUCTURE_ERROR"


class PerformanceError(ValidationError):
    """A performance check failed."""

    code = "PERFORMANCE_ERROR"


class CacheError(CheckerError):
    """Raised when the incremental cache cannot be written."""

    code = "CACHE_ERROR"


class ExtensionNotFoundError(CheckerError):
    """Raised when the extension path does not exist or is not a directory."""

    code = "PATH_NOT_FOUND"

    def __init__(self, path: str):
        super().__init__(f"Extension path not found: {path}", details={"path": path})
        self.path = path
