import asyncio
import time

import pytest

from extension_checker import TestCase, TestRunner, TestSuite, ValidationError
from extension_checker.issue import Severity
from extension_checker.results import FAILED, PASSED, SKIPPED, CaseResult, RunResult, SuiteResult, success_rate


def run(runner, suites):
    return asyncio.run(runner.run(suites))


def test_throwing_check_fails_with_message_preserved(tmp_path, config_for):
    def broken(ctx):
        raise ValidationError("manifest is broken")

    async def async_ok(ctx):
        await asyncio.sleep(0)

    suite = TestSuite("Sample")
    suite.test("passes", lambda ctx: None)
    suite.test("async passes", async_ok)
    suite.test("fails", broken)
    suite.test("plain error", lambda ctx: 1 / 0)

    result = run(TestRunner(config_for(tmp_path)), [suite])
    cases = result.suites[0].tests
    assert [c.status for c in cases] == [PASSED, PASSED, FAILED, FAILED]
    assert cases[2].error["message"] == "manifest is broken"
    assert cases[2].error["name"] == "ValidationError"
    assert cases[2].error["code"] == "VALIDATION_ERROR"
    assert cases[3].error["name"] == "ZeroDivisionError"
    assert "Traceback" in cases[3].error["stack"]


def test_timeout_is_recorded_once(tmp_path, config_for):
    async def slow(ctx):
        await asyncio.sleep(5)

    suite = TestSuite("Slow")
    suite.test("slow", slow, timeout=0.05)
    suite.test("after", lambda ctx: None)

    started = time.perf_counter()
    result = run(TestRunner(config_for(tmp_path)), [suite])
    assert time.perf_counter() - started < 4

    slow_case, after_case = result.suites[0].tests
    assert slow_case.status == FAILED
    assert slow_case.error["name"] == "CaseTimeoutError"
    assert "timed out after 0.05s" in slow_case.error["message"]
    assert after_case.status == PASSED


def test_late_warning_from_abandoned_check_is_dropped(tmp_path, config_for):
    def lingering(ctx):
        time.sleep(0.3)
        ctx.warn("late warning")

    suite = TestSuite("Lingering")
    suite.test("lingering", lingering, timeout=0.05)
    suite.test("on time", lambda ctx: ctx.warn("on time warning"))

    result = run(TestRunner(config_for(tmp_path)), [suite])
    assert [c.status for c in result.suites[0].tests] == [FAILED, PASSED]
    assert result.suites[0].warnings == ["on time warning"]
    assert result.warnings == ["on time warning"]
    assert result.summary.warning_count == 1


def test_timed_out_sync_check_does_not_hold_the_run_open(tmp_path, config_for):
    suite = TestSuite("Blocking")
    suite.test("blocking", lambda ctx: time.sleep(3), timeout=0.2)

    started = time.perf_counter()
    result = run(TestRunner(config_for(tmp_path)), [suite])
    assert time.perf_counter() - started < 2
    assert result.suites[0].tests[0].error["name"] == "CaseTimeoutError"


def test_timeout_falls_back_from_case_to_suite_to_config(tmp_path, config_for):
    runner = TestRunner(config_for(tmp_path, timeout=12))
    suite = TestSuite("Timeouts", timeout=3)
    with_own = TestCase("own", lambda ctx: None, timeout=1)
    without = TestCase("inherit", lambda ctx: None)
    assert runner.timeout_for(with_own, suite) == 1
    assert runner.timeout_for(without, suite) == 3
    assert runner.timeout_for(without, TestSuite("Plain")) == 12


def test_hook_failures_are_logged_not_recorded(tmp_path, config_for):
    calls = []

    def broken_setup(ctx):
        raise RuntimeError("setup broke")

    suite = TestSuite("Hooks")
    suite.before(broken_setup)
    suite.before_each(lambda ctx: calls.append("before"))
    suite.after_each(lambda ctx: calls.append("after"))
    suite.after(lambda ctx: calls.append("done"))
    suite.test("a", lambda ctx: calls.append("a"))
    suite.test("b", lambda ctx: calls.append("b"))

    result = run(TestRunner(config_for(tmp_path)), [suite])
    assert [c.status for c in result.suites[0].tests] == [PASSED, PASSED]
    assert calls == ["before", "a", "after", "before", "b", "after", "done"]


def test_skip_priority(tmp_path, config_for):
    config = config_for(tmp_path, skipTests=["configured", "both"], quick=True)
    essentials = {"Sample": frozenset({"essential", "configured", "both"})}

    suite = TestSuite("Sample")
    suite.skip("both", lambda ctx: None)
    suite.test_if(lambda cfg: False, "conditional", lambda ctx: None)
    suite.test("configured", lambda ctx: None)
    suite.test("essential", lambda ctx: None)
    suite.test("extra", lambda ctx: None)

    result = run(TestRunner(config, essentials=essentials), [suite])
    got = {c.name: (c.status, c.skip_reason) for c in result.suites[0].tests}
    assert got == {
        "both": (SKIPPED, "skipped by test definition"),
        "conditional": (SKIPPED, "skipped by test definition"),
        "configured": (SKIPPED, "skipped by configuration"),
        "essential": (PASSED, None),
        "extra": (SKIPPED, "not essential in quick mode"),
    }


def test_disabled_suites_are_not_run(tmp_path, config_for):
    on = TestSuite("On").test("x", lambda ctx: None)
    off = TestSuite("Off").test("y", lambda ctx: None).disable()
    result = run(TestRunner(config_for(tmp_path)), [on, off])
    assert [s.name for s in result.suites] == ["On"]


def test_summary_aggregation(tmp_path, config_for):
    first = TestSuite("First").test("a", lambda ctx: None).test("b", lambda ctx: 1 / 0)
    second = TestSuite("Second").test("c", lambda ctx: None).skip("d", lambda ctx: None)
    result = run(TestRunner(config_for(tmp_path)), [first, second])
    summary = result.summary
    assert summary.total == sum(len(s.tests) for s in result.suites) == 4
    assert (summary.passed, summary.failed, summary.skipped) == (2, 1, 1)
    assert summary.success_rate == 50
    assert summary.errors == [{"suite": "First", "test": "b", "message": "division by zero"}]
    assert result.to_dict()["summary"]["successRate"] == 50


def test_empty_run_has_zero_success_rate(tmp_path, config_for):
    result = run(TestRunner(config_for(tmp_path)), [])
    assert result.summary.total == 0
    assert result.summary.success_rate == 0
    assert success_rate(2, 3) == 67


def test_exit_code_respects_case_severity():
    def result_with(severity):
        return RunResult.build([SuiteResult("S", [CaseResult("t", FAILED, severity=severity)])])

    warning_failure = result_with(Severity.WARNING)
    assert warning_failure.exit_code() == 0
    assert warning_failure.exit_code(fail_on_warning=True) == 1
    error_failure = result_with(Severity.ERROR)
    assert error_failure.exit_code() == 1
    assert error_failure.exit_code(fail_on_error=False) == 0


def test_case_builders(tmp_path, config_for):
    suite = TestSuite("Builders")
    suite.add_tests([
        TestCase.assertion("truthy", lambda ctx: True),
        TestCase.assertion("falsy", lambda ctx: False, message="nope"),
        TestCase.expect("expect", lambda ctx: 3, 4),
        TestCase.match("match", lambda ctx: "1.2.3", r"^\d+\.\d+\.\d+$"),
        TestCase.exists("exists", lambda ctx: False),
        TestCase.range("range", lambda ctx: 11, 0, 10),
    ])
    result = run(TestRunner(config_for(tmp_path)), [suite])
    got = {c.name: c for c in result.suites[0].tests}
    assert got["truthy"].passed and got["match"].passed
    assert got["falsy"].error["message"] == "nope"
    assert got["expect"].error["message"] == "Expected 4 but got 3"
    assert got["exists"].error["message"] == "exists does not exist"
    assert got["range"].error["message"] == "Value 11 is out of range [0, 10]"


def test_suite_registration_helpers():
    def check_manifest_icons(ctx):
        return None

    suite = TestSuite("Helpers").add_test(check_manifest_icons)
    assert suite.tests[0].name == "check manifest icons"
    assert suite.test_count == 1 and not suite.is_empty()
    assert TestCase("tagged", lambda ctx: None, tags=["fast"]).has_tag("fast")
    with pytest.raises(TypeError):
        TestCase("bad", "not callable")
