"""
Parallel mode: whole suites distributed over a process pool.

Workers receive the configuration as plain data and rebuild their suite from
``suite.factory``. Suites without a factory run in-process after the pool
work. At most ``workers`` suites are in flight, so a crashed pool only fails
the suites it was running; the rest are dispatched to a restarted pool.
"""

import asyncio
import logging
import os
import time
from collections import deque
from concurrent.futures import Executor, ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from typing import Any, Callable, Deque, Dict, List, Optional

from .config import CheckerConfig
from .context import Toolkit, WarningCollector
from .results import FAILED, CaseResult, RunResult, SuiteResult, error_info
from .runner import TestRunner
from .suite import TestSuite
from .utils import load_object

logger = logging.getLogger(__name__)

RESTART_BACKOFF = 1.0


def run_suite_task(factory: str, config_data: Dict[str, Any], files: Optional[List[str]] = None) -> Dict[str, Any]:
    """Worker entry point: build the suite, run it, return the result as a dict."""
    config = CheckerConfig.model_validate(config_data)
    toolkit = Toolkit.from_config(config)
    if files is not None:
        toolkit.restrict_to(files)
    suite = load_object(factory)(config)
    result = asyncio.run(TestRunner(config, toolkit).run_suite(suite))
    return result.to_dict()


def pool_size(suite_count: int, max_workers: Optional[int] = None) -> int:
    if max_workers:
        return max(1, min(max_workers, suite_count))
    return max(1, min((os.cpu_count() or 2) - 1, suite_count))


def crashed_result(suite: TestSuite, exc: BaseException) -> SuiteResult:
    """Result for a suite that did not complete in a worker: every case is reported failed."""
    info = error_info(exc)
    info["message"] = f"Suite '{suite.name}' did not complete in its worker: {info['message']}"
    tests = [CaseResult(case.name, FAILED, error=info, severity=case.severity) for case in suite.tests]
    return SuiteResult(
        name=suite.name, tests=tests, category=suite.category,
        description=suite.description, error=info,
    )


class ParallelRunner:
    """Runs enabled suites across worker processes; falls back to in-process execution."""

    def __init__(
        self,
        config: CheckerConfig,
        toolkit: Optional[Toolkit] = None,
        collector: Optional[WarningCollector] = None,
        executor_factory: Optional[Callable[[int], Executor]] = None,
        files: Optional[List[str]] = None,
        backoff: float = RESTART_BACKOFF,
    ):
        self.config = config
        self.toolkit = toolkit or Toolkit.from_config(config)
        self.collector = collector or WarningCollector()
        self.executor_factory = executor_factory or (lambda n: ProcessPoolExecutor(max_workers=n))
        self.files = files
        self.backoff = backoff
        self.sequential = TestRunner(config, self.toolkit, collector=self.collector)
        self.warnings: List[str] = []

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        self.collector.warn(message, source="parallel")

    async def run(self, suites: List[TestSuite]) -> RunResult:
        started = time.perf_counter()
        self.warnings = []
        enabled = [s for s in suites if s.enabled]
        remote = [i for i, s in enumerate(enabled) if s.factory]
        results: Dict[int, SuiteResult] = {}

        leftover = await self._run_pool(enabled, remote, results)
        for i in leftover:
            results[i] = await self.sequential.run_suite(enabled[i])
        for i, suite in enumerate(enabled):
            if not suite.factory:
                results[i] = await self.sequential.run_suite(suite)

        ordered = [results[i] for i in range(len(enabled))]
        return RunResult.build(ordered, extra_warnings=self.warnings, duration=time.perf_counter() - started)

    async def _run_pool(self, suites: List[TestSuite], indices: List[int], results: Dict[int, SuiteResult]) -> List[int]:
        """Dispatch ``indices`` to the pool. Returns indices left for in-process execution."""
        if not indices:
            return []
        workers = pool_size(len(indices), self.config.max_workers)
        queue: Deque[int] = deque(indices)
        config_data = self.config.model_dump(by_alias=True)
        restarts = 0

        while queue:
            try:
                executor = self.executor_factory(workers)
            except (OSError, NotImplementedError, ValueError) as e:
                self._warn(f"Parallel execution unavailable ({e}); running suites sequentially")
                return list(queue)

            logger.info("Dispatching %d suite(s) to %d worker(s)", len(queue), workers)
            crashed = await self._drain(executor, suites, queue, results, config_data, workers)
            executor.shutdown(wait=False, cancel_futures=True)
            if not crashed or not queue:
                break
            if restarts >= 1:
                self._warn("Worker pool crashed again; running remaining suites sequentially")
                return list(queue)
            restarts += 1
            logger.warning("Worker pool crashed; restarting in %.1fs", self.backoff)
            await asyncio.sleep(self.backoff)
        return []

    async def _drain(
        self,
        executor: Executor,
        suites: List[TestSuite],
        queue: Deque[int],
        results: Dict[int, SuiteResult],
        config_data: Dict[str, Any],
        workers: int,
    ) -> bool:
        """Run queued suites with at most ``workers`` in flight. Returns True if the pool broke."""
        inflight: Dict["asyncio.Future", int] = {}
        broken = False
        while queue or inflight:
            while queue and not broken and len(inflight) < workers:
                i = queue.popleft()
                try:
                    future = executor.submit(run_suite_task, suites[i].factory, config_data, self.files)
                except BrokenProcessPool:
                    queue.appendleft(i)
                    broken = True
                    break
                inflight[asyncio.wrap_future(future)] = i
            if not inflight:
                break
            done, _ = await asyncio.wait(inflight, return_when=asyncio.FIRST_COMPLETED)
            for future in done:
                i = inflight.pop(future)
                try:
                    results[i] = SuiteResult.from_dict(future.result())
                except BrokenProcessPool as e:
                    broken = True
                    logger.error("Suite %s lost with its worker: %s", suites[i].name, e)
                    results[i] = crashed_result(suites[i], e)
                except Exception as e:
                    logger.error("Suite %s failed in worker: %s", suites[i].name, e)
                    results[i] = crashed_result(suites[i], e)
        return broken
