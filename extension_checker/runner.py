"""
Sequential suite runner.

Each case moves pending -> skipped, or pending -> running -> passed/failed.
A running check races its timeout; the first to settle decides the result,
which is recorded once. Sync checks and hooks run on a thread pool owned
by the suite run, so a timed-out check never holds the event loop open.
Hook failures are logged and do not fail the suite.
"""

import asyncio
import logging
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, FrozenSet, List, Mapping, Optional

from .case import TestCase, call_maybe_async
from .config import CheckerConfig
from .context import CheckContext, Toolkit, WarningCollector
from .errors import CaseTimeoutError
from .essentials import ESSENTIAL_TESTS, is_essential
from .results import FAILED, PASSED, SKIPPED, CaseResult, RunResult, SuiteResult, error_info
from .suite import TestSuite

logger = logging.getLogger(__name__)


def _consume_late_outcome(task: "asyncio.Future") -> None:
    # Outcome of an abandoned check; read it so asyncio does not report it as unhandled.
    if not task.cancelled():
        exc = task.exception()
        if exc is not None:
            logger.debug("Late failure from timed-out check ignored: %s", exc)


class TestRunner:
    """Runs suites one case at a time, in registration order."""

    __test__ = False

    def __init__(
        self,
        config: CheckerConfig,
        toolkit: Optional[Toolkit] = None,
        essentials: Optional[Mapping[str, FrozenSet[str]]] = None,
        collector: Optional[WarningCollector] = None,
    ):
        self.config = config
        self.toolkit = toolkit or Toolkit.from_config(config)
        self.essentials = ESSENTIAL_TESTS if essentials is None else essentials
        self.collector = collector or WarningCollector()

    async def run(self, suites: List[TestSuite]) -> RunResult:
        started = time.perf_counter()
        results = []
        for suite in suites:
            if not suite.enabled:
                logger.info("Suite disabled: %s", suite.name)
                continue
            results.append(await self.run_suite(suite))
        return RunResult.build(results, duration=time.perf_counter() - started)

    async def run_suite(self, suite: TestSuite) -> SuiteResult:
        logger.info("Running suite: %s (%d tests)", suite.name, suite.test_count)
        started = time.perf_counter()
        scope = self.collector.scope(suite.name)
        context = CheckContext(self.config, self.toolkit, scope, suite)
        result = SuiteResult(name=suite.name, category=suite.category, description=suite.description)
        executor = ThreadPoolExecutor(thread_name_prefix=f"check-{suite.name}")
        try:
            await self._hook("beforeAll", suite.before_all, context, executor)
            for case in suite.tests:
                result.tests.append(await self.run_test(case, suite, context, executor))
            await self._hook("afterAll", suite.after_all, context, executor)
        finally:
            # Abandoned checks keep their thread; nothing waits on them.
            executor.shutdown(wait=False, cancel_futures=True)
            result.warnings = [w.message for w in scope.close()]
            result.duration = time.perf_counter() - started
        logger.info(
            "Suite %s: %d passed, %d failed, %d skipped",
            suite.name, result.passed, result.failed, result.skipped,
        )
        return result

    def skip_reason(self, case: TestCase, suite: TestSuite) -> Optional[str]:
        if case.should_skip(self.config):
            return "skipped by test definition"
        if case.name in self.config.skip_tests:
            return "skipped by configuration"
        if self.config.quick and not is_essential(suite.name, case.name, self.essentials):
            return "not essential in quick mode"
        return None

    def timeout_for(self, case: TestCase, suite: TestSuite) -> float:
        return case.timeout or suite.timeout or self.config.timeout

    async def run_test(
        self, case: TestCase, suite: TestSuite, context: CheckContext, executor: Optional[Executor] = None,
    ) -> CaseResult:
        reason = self.skip_reason(case, suite)
        if reason:
            logger.debug("Skipping %s: %s", case.name, reason)
            return CaseResult(case.name, SKIPPED, severity=case.severity, skip_reason=reason)

        case_scope = context.warnings.child(f"{suite.name} > {case.name}")
        case_context = CheckContext(context.config, context.toolkit, case_scope, suite)
        await self._hook("beforeEach", suite.before_each_hook, context, executor)

        timeout = self.timeout_for(case, suite)
        started = time.perf_counter()
        task = asyncio.ensure_future(case.run(case_context, executor))
        done, _ = await asyncio.wait({task}, timeout=timeout)
        duration = time.perf_counter() - started

        error: Optional[BaseException]
        if task in done:
            error = asyncio.CancelledError() if task.cancelled() else task.exception()
        else:
            task.cancel()
            task.add_done_callback(_consume_late_outcome)
            error = CaseTimeoutError(case.name, timeout)
        case_scope.close()

        await self._hook("afterEach", suite.after_each_hook, context, executor)

        if error is None:
            logger.debug("PASS %s", case.name)
            return CaseResult(case.name, PASSED, duration, severity=case.severity)
        logger.info("FAIL %s: %s", case.name, error)
        return CaseResult(case.name, FAILED, duration, error=error_info(error), severity=case.severity)

    async def _hook(
        self, name: str, fn: Optional[Callable], context: CheckContext, executor: Optional[Executor] = None,
    ) -> None:
        if fn is None:
            return
        try:
            await call_maybe_async(fn, context, executor=executor)
        except Exception as e:
            logger.error("%s hook failed in %s: %s", name, getattr(context.suite, "name", "?"), e)
