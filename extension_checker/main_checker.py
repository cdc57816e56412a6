"""
Main checker class that coordinates scanning, suites, and incremental runs.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .config import CheckerConfig, load_config
from .context import Toolkit, WarningCollector
from .errors import CacheError, ExtensionNotFoundError
from .incremental import FULL, NONE, IncrementalTracker
from .issue import Issue
from .parallel import ParallelRunner
from .relationships import build_dependency_graph
from .results import RunResult, compute_summary
from .runner import TestRunner
from .suite import TestSuite
from .suites import builtin_suites

logger = logging.getLogger(__name__)


class ExtensionChecker:
    """Entry point for embedding the checker: configure, add suites, run."""

    def __init__(
        self,
        config: Optional[CheckerConfig] = None,
        is_tool_path: Optional[Callable[[str], bool]] = None,
        executor_factory: Optional[Callable] = None,
    ):
        self.config = config or load_config()
        self.toolkit = Toolkit.from_config(self.config, is_tool_path)
        self.collector = WarningCollector()
        self.tracker = IncrementalTracker(self.config.root, self.config.cache_path, self.toolkit.matcher)
        self.executor_factory = executor_factory
        self.suites: List[TestSuite] = []
        for plugin in self.config.load_plugins():
            self.use(plugin)

    def add_suite(self, suite: TestSuite) -> "ExtensionChecker":
        self.suites.append(suite)
        return self

    def use_builtin_suites(self, keys: Optional[List[str]] = None) -> "ExtensionChecker":
        for suite in builtin_suites(self.config, keys):
            self.add_suite(suite)
        return self

    def use(self, plugin: Any) -> "ExtensionChecker":
        """Register a plugin: a TestSuite, an object with ``register(checker)``, or a callable taking the checker."""
        if isinstance(plugin, TestSuite):
            return self.add_suite(plugin)
        register = getattr(plugin, "register", None)
        if callable(register):
            register(self)
        elif callable(plugin):
            plugin(self)
        else:
            raise TypeError(f"Unsupported plugin: {plugin!r}")
        return self

    def _require_root(self) -> None:
        if not self.config.root.is_dir():
            raise ExtensionNotFoundError(str(self.config.root))

    # --- scanning ---

    def scan(self) -> List[Issue]:
        """Resolved issues for the whole tree."""
        self._require_root()
        self.toolkit.reset()
        return self.toolkit.issues()

    def scan_report(self) -> Dict[str, Any]:
        issues = self.scan()
        resolver = self.toolkit.resolver
        return {
            "issues": [i.to_dict() for i in issues],
            "statistics": resolver.statistics(issues),
            "summary": resolver.summary_line(issues),
            "warnings": self.toolkit.scan_warnings(),
            "exitCode": resolver.exit_code(issues),
        }

    # --- running ---

    async def run_async(self, incremental: bool = False, force_full: bool = False, use_git: bool = False) -> RunResult:
        self._require_root()
        started = time.perf_counter()
        if not self.suites:
            self.use_builtin_suites()

        self.toolkit.reset()
        suites = list(self.suites)
        mode, reason, files = FULL, None, None
        extra: List[str] = []
        if incremental:
            targets = await asyncio.to_thread(self.tracker.determine_targets, force_full=force_full, use_git=use_git)
            if self.tracker.load_warning:
                extra.append(self.tracker.load_warning)
            mode, reason = targets.mode, targets.reason
            logger.info("Incremental mode: %s (%s)", mode, reason)
            if mode == NONE:
                return RunResult.build([], extra, duration=time.perf_counter() - started, mode=mode, reason=reason)
            if mode != FULL:
                suites = [s for s in suites if not s.category or s.category in targets.suites]
                files = targets.files
                await asyncio.to_thread(self.toolkit.restrict_to, files)

        if self.config.parallel:
            runner = ParallelRunner(
                self.config, self.toolkit, self.collector, executor_factory=self.executor_factory, files=files,
            )
        else:
            runner = TestRunner(self.config, self.toolkit, collector=self.collector)
        result = await runner.run(suites)

        extra.extend(await asyncio.to_thread(self._record, result, mode))
        result.warnings.extend(extra)
        result.summary = compute_summary(result.suites, result.warnings)
        result.duration = time.perf_counter() - started
        result.mode, result.reason = mode, reason
        logger.info(
            "Run finished: %d passed, %d failed, %d skipped (%d%%)",
            result.summary.passed, result.summary.failed, result.summary.skipped, result.summary.success_rate,
        )
        return result

    def _record(self, result: RunResult, mode: str) -> List[str]:
        """Persist hashes, dependencies, and the summary for the next incremental run."""
        graph = build_dependency_graph(self.config.root, self.toolkit.files())
        dependents = {rel: edges["imported_by"] for rel, edges in graph.items() if edges["imported_by"]}
        self.tracker.set_dependencies(dependents)
        try:
            self.tracker.record_run(result.summary.to_dict(), mode)
        except CacheError as e:
            logger.warning("%s", e)
            return [str(e)]
        return []

    def run(self, **options: Any) -> RunResult:
        return asyncio.run(self.run_async(**options))

    def exit_code(self, result: RunResult) -> int:
        return result.exit_code(self.config.fail_on_error, self.config.fail_on_warning)

    # --- cache ---

    def clear_cache(self) -> None:
        self.tracker.clear_cache()

    def cache_stats(self) -> Dict[str, Any]:
        return self.tracker.stats()
