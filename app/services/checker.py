"""Checker service: wraps extension_checker and maps to API models."""

from deps import Any, Dict, List, Optional, Path, asyncio

from extension_checker import ExtensionChecker, Issue, RunResult, load_config
from extension_checker.issue import Severity

from ..config import get_config_path
from ..schemas import IssueOut, RunRequest, RunResponse, ScanRequest, ScanResponse


def _issue_to_out(i: Issue) -> IssueOut:
    severity = i.severity.value if isinstance(i.severity, Severity) else str(i.severity).upper()
    return IssueOut(
        type=i.type,
        file=i.file,
        line=i.line,
        column=i.column,
        severity=severity,
        message=i.message,
        context=i.context,
        suggestion=i.suggestion,
        reason=i.reason,
    )


class CheckerService:
    """Wraps ExtensionChecker for use by the API."""

    def build(self, extension_path: str, config_path: Optional[str] = None,
              overrides: Optional[Dict[str, Any]] = None) -> ExtensionChecker:
        """Load config for an extension directory and construct a checker.

        Raises ConfigError and ExtensionNotFoundError unchanged; the route
        layer maps them to HTTP errors.
        """
        data = dict(overrides or {})
        config_path = config_path or get_config_path() or None
        data["extensionPath"] = extension_path
        config = load_config(path=config_path, overrides=data)
        return ExtensionChecker(config)

    def _from_request(self, req: ScanRequest) -> ExtensionChecker:
        return self.build(req.extension_path, req.config_path, req.config)

    def scan(self, req: ScanRequest) -> ScanResponse:
        """Run rule-based detectors over the whole extension tree."""
        checker = self._from_request(req)
        issues = checker.scan()
        resolver = checker.toolkit.resolver
        return ScanResponse(
            issues=[_issue_to_out(i) for i in issues],
            statistics=resolver.statistics(issues),
            summary=resolver.summary_line(issues),
            warnings=checker.toolkit.scan_warnings(),
            exit_code=resolver.exit_code(issues),
        )

    def issues(self, req: ScanRequest) -> List[IssueOut]:
        return self.scan(req).issues

    async def run(self, req: RunRequest) -> RunResponse:
        """Run test suites, optionally incrementally."""
        overrides = dict(req.config)
        if req.suites:
            overrides["suites"] = req.suites
        checker = await asyncio.to_thread(self.build, req.extension_path, req.config_path, overrides)
        result: RunResult = await checker.run_async(
            incremental=req.incremental,
            force_full=req.force_full,
            use_git=req.use_git,
        )
        return RunResponse(result=result.to_dict(), exit_code=checker.exit_code(result))

    def cache_stats(self, extension_path: str) -> Dict[str, Any]:
        return self.build(extension_path).cache_stats()

    def clear_cache(self, extension_path: str) -> None:
        self.build(extension_path).clear_cache()

    def read_manifest(self, extension_path: str) -> Optional[str]:
        """Raw manifest.json text for AI prompts, or None if absent."""
        path = Path(extension_path) / "manifest.json"
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8", errors="replace")
