import pytest

from extension_checker.issue import Issue, Severity, normalize_severity
from extension_checker.severity import ResolveContext, SeverityResolver


def issue(type_, file="src/app.js", severity="medium", context=""):
    return Issue(type=type_, file=file, line=1, severity=severity, message=type_, context=context)


def test_default_table():
    resolver = SeverityResolver()
    assert resolver.resolve(issue("unsafe-innerHTML")) == Severity.ERROR
    assert resolver.resolve(issue("console", severity="low")) == Severity.WARNING
    assert resolver.resolve(issue("custom-rule", severity="low")) == Severity.INFO
    assert resolver.resolve(issue("custom-rule", severity="bogus")) == Severity.WARNING


def test_legacy_normalization():
    assert normalize_severity("critical") == Severity.ERROR
    assert normalize_severity("HIGH") == Severity.ERROR
    assert normalize_severity("medium") == Severity.WARNING
    assert normalize_severity("ignore") is None
    with pytest.raises(ValueError):
        normalize_severity("bogus")


def test_severity_ordering():
    assert Severity.ERROR > Severity.WARNING > Severity.INFO
    assert max([Severity.INFO, Severity.ERROR, Severity.WARNING]) == Severity.ERROR


def test_config_override_wins():
    resolver = SeverityResolver(warning_levels={"console": "error", "eval": "ignore"})
    assert resolver.resolve(issue("console")) == Severity.ERROR
    assert resolver.resolve(issue("eval")) is None


def test_ignore_in_test_files_falls_through_elsewhere():
    resolver = SeverityResolver(warning_levels={"console": "ignore-in-test-files"})
    assert resolver.resolve(issue("console", file="tests/popup.test.js")) is None
    assert resolver.resolve(issue("console", file="src/popup.js")) == Severity.WARNING


def test_object_override_with_excluded_files():
    resolver = SeverityResolver(warning_levels={"localStorage": {"severity": "error", "excludeFiles": ["vendor/**"]}})
    assert resolver.resolve(issue("localStorage", file="vendor/lib.js")) is None
    assert resolver.resolve(issue("localStorage", file="src/app.js")) == Severity.ERROR


def test_threshold_applies_per_type_count():
    resolver = SeverityResolver(warning_levels={"console": {"severity": "error", "threshold": 3}})
    two = [issue("console", file=f"f{i}.js") for i in range(2)]
    three = [issue("console", file=f"f{i}.js") for i in range(3)]
    assert resolver.classify(two) == []
    assert [i.severity for i in resolver.classify(three)] == [Severity.ERROR] * 3


def test_environment_adjustments():
    assert SeverityResolver(environment="development").resolve(issue("console")) == Severity.INFO
    assert SeverityResolver(environment="test").resolve(issue("hardcoded-secret")) == Severity.INFO
    strict_prod = SeverityResolver(environment="production", strict_mode=True)
    assert strict_prod.resolve(issue("console")) == Severity.ERROR
    assert SeverityResolver(environment="production").resolve(issue("console")) == Severity.WARNING


def test_file_role_adjustments():
    resolver = SeverityResolver()
    assert resolver.resolve(issue("hardcoded-secret", file="src/config.js")) == Severity.WARNING
    assert resolver.resolve(issue("localStorage", file="background.js")) == Severity.ERROR
    assert resolver.resolve(issue("eval", file="tests/helpers.js")) == Severity.INFO


def test_known_issue_downgrades_with_reason():
    resolver = SeverityResolver(known_issues=[{"issue": "eval", "file": "lib/*.js", "reason": "vendored parser"}])
    known = issue("eval", file="lib/legacy.js")
    assert resolver.resolve(known) == Severity.INFO
    classified = resolver.classify([known, issue("eval", file="src/app.js")])
    assert classified[0].severity == Severity.INFO
    assert classified[0].reason == "vendored parser"
    assert classified[1].severity == Severity.ERROR
    assert "known issue: vendored parser" in resolver.format_message(classified[0])


def test_resolve_is_idempotent():
    resolver = SeverityResolver(warning_levels={"console": "info"}, environment="production")
    ctx = ResolveContext(environment="production", count=4)
    for candidate in (issue("console"), issue("eval"), issue("unknown", severity="low")):
        assert resolver.resolve(candidate, ctx) == resolver.resolve(candidate, ctx)


def test_exit_code_by_level():
    resolver = SeverityResolver()
    warnings_only = [issue("console"), issue("localStorage")]
    assert resolver.exit_code(warnings_only) == 0
    assert resolver.exit_code(warnings_only, fail_on_warning=True) == 1
    assert resolver.exit_code([issue("eval")]) == 1
    assert SeverityResolver(fail_on_warning=True).exit_code(warnings_only) == 1


def test_profiles_and_aggregates():
    resolver = SeverityResolver()
    resolver.apply_profile("lenient")
    assert resolver.resolve(issue("console")) == Severity.INFO
    with pytest.raises(ValueError):
        resolver.apply_profile("paranoid")

    issues = SeverityResolver().classify([issue("eval"), issue("console"), issue("console")])
    stats = SeverityResolver().statistics(issues)
    assert stats["total"] == 3
    assert stats["byLevel"] == {"ERROR": 1, "WARNING": 2, "INFO": 0}
    assert stats["byType"]["console"]["count"] == 2
    groups = SeverityResolver().group_by_severity(issues)
    assert len(groups[Severity.WARNING]) == 2
    assert len(SeverityResolver().filter_by_minimum(issues, "error")) == 1
    assert SeverityResolver().summary_line([]) == "No issues found"
    assert "1 errors" in SeverityResolver().summary_line(issues)
