import pytest

from extension_checker import ExtensionChecker, ExtensionNotFoundError, TestSuite
from extension_checker.issue import Severity
from extension_checker.results import FAILED, PASSED, SKIPPED

RENDER_JS = "\n".join(
    [
        "// Renders the list of saved items.",
        "import { items } from './store.js';",
        "",
        "function render(el, userInput) {",
        "  const header = document.createElement('h2');",
        "  header.textContent = 'Saved';",
        "  el.appendChild(header);",
        "  el.innerHTML = '';",
        "  // el.innerHTML = userInput;",
        "  el.innerHTML = userInput;",
        "}",
        "",
        "export { render };",
        "",
    ]
)


def cases_by_name(result):
    return {c.name: c for s in result.suites for c in s.tests}


def test_clean_extension_passes_builtin_suites(extension, config_for):
    checker = ExtensionChecker(config_for(extension))
    result = checker.run()

    suites = {s.category: s for s in result.suites}
    assert list(suites) == ["manifest", "security", "performance", "structure", "localization"]
    for key in ("manifest", "security", "performance", "structure"):
        assert suites[key].failed == 0, suites[key].to_dict()
    assert all(c.status == SKIPPED for c in suites["localization"].tests)
    assert result.summary.failed == 0
    assert checker.exit_code(result) == 0


def test_unsafe_innerhtml_reported_once_at_its_line(make_extension, config_for):
    root = make_extension({"src/render.js": RENDER_JS, "src/store.js": "export const items = [];\n"})
    checker = ExtensionChecker(config_for(root))

    sinks = [i for i in checker.scan() if i.type == "unsafe-innerHTML"]
    assert len(sinks) == 1
    assert sinks[0].file == "src/render.js"
    assert sinks[0].line == 10
    assert sinks[0].severity >= Severity.WARNING

    result = checker.use_builtin_suites(["security"]).run()
    case = cases_by_name(result)["Safe innerHTML usage"]
    assert case.status == FAILED
    assert "src/render.js:10" in case.error["message"]
    assert case.error["name"] == "SecurityError"
    assert checker.exit_code(result) == 1


def test_scan_report_shape(make_extension, config_for):
    root = make_extension({"src/render.js": RENDER_JS})
    report = ExtensionChecker(config_for(root)).scan_report()
    assert report["exitCode"] == 1
    assert report["statistics"]["total"] == len(report["issues"])
    assert any(i["type"] == "unsafe-innerHTML" and i["line"] == 10 for i in report["issues"])
    assert report["warnings"] == []


def test_manifest_failures(make_extension, config_for):
    manifest = {
        "manifest_version": 2,
        "name": "x" * 60,
        "version": "1.0.beta",
        "permissions": ["storage", "https://example.com/*"],
        "background": {"scripts": ["background.js"]},
        "content_scripts": [{"js": ["content.js"]}],
        "icons": {"16": "icons/16.png"},
    }
    root = make_extension(manifest=manifest)
    result = ExtensionChecker(config_for(root, suites=["manifest"])).run()
    cases = cases_by_name(result)

    assert cases["Manifest version is 3"].status == FAILED
    assert cases["Version format valid"].status == FAILED
    assert cases["Name length within limits"].status == FAILED
    assert cases["Name length within limits"].severity == Severity.WARNING
    assert cases["Service worker configuration"].status == FAILED
    assert cases["Content scripts validation"].status == FAILED
    assert cases["Icons present"].status == FAILED
    assert cases["Required fields present"].status == PASSED
    assert cases["Valid permissions"].status == PASSED


def test_invalid_manifest_json(make_extension, config_for):
    root = make_extension(manifest=None, files={"manifest.json": "{ broken"})
    result = ExtensionChecker(config_for(root, suites=["manifest"])).run()
    cases = cases_by_name(result)
    assert cases["manifest.json exists"].status == PASSED
    assert cases["Valid JSON format"].status == FAILED
    assert "Invalid JSON" in cases["Valid JSON format"].error["message"]


def test_security_manifest_checks(make_extension, config_for):
    manifest = {
        "manifest_version": 3,
        "name": "Risky",
        "version": "1.0",
        "background": {"service_worker": "background.js"},
        "permissions": ["debugger"],
        "host_permissions": ["<all_urls>"],
        "content_security_policy": {"extension_pages": "script-src 'self' 'unsafe-eval'"},
    }
    root = make_extension(
        manifest=manifest,
        files={"options.html": '<button onclick="go()">Go</button><script src="https://cdn.example.com/x.js"></script>'},
    )
    result = ExtensionChecker(config_for(root, suites=["security"])).run()
    cases = cases_by_name(result)
    assert cases["Content Security Policy validation"].status == FAILED
    assert cases["Least privilege permissions"].status == FAILED
    assert cases["No inline scripts in HTML"].status == FAILED
    assert cases["No external script loading"].status == FAILED
    assert any("Overly broad permissions" in w for w in result.warnings)


def test_structure_and_performance_checks(make_extension, config_for):
    root = make_extension(
        files={
            "package.json": "{}",
            "a.js": "import './b.js';\ndebugger;\n",
            "b.js": "import './a.js';\n// debugger;\n",
        },
    )
    result = ExtensionChecker(config_for(root, suites=["performance", "structure"])).run()
    cases = cases_by_name(result)
    assert cases["No development files"].status == FAILED
    assert "package.json" in cases["No development files"].error["message"]
    assert cases["No circular references"].status == FAILED
    assert "a.js -> b.js -> a.js" in cases["No circular references"].error["message"]
    assert cases["No debugger statements"].status == FAILED
    assert "b.js" not in cases["No debugger statements"].error["message"]
    assert cases["Referenced files exist"].status == PASSED


def test_localization_checks(make_extension, config_for):
    manifest = {"manifest_version": 3, "name": "__MSG_name__", "version": "1.0", "default_locale": "en"}
    root = make_extension(
        manifest=manifest,
        files={
            "_locales/en/messages.json": {"name": {"message": "Hello $USER$"}, "desc": {"message": "D"}},
            "_locales/de/messages.json": {"name": {"message": "Hallo"}},
        },
    )
    result = ExtensionChecker(config_for(root, suites=["localization"])).run()
    cases = cases_by_name(result)
    assert cases["Locales directory exists"].status == PASSED
    assert cases["Default locale validation"].status == PASSED
    assert cases["Messages format validation"].status == PASSED
    assert cases["Consistency across locales"].status == FAILED
    assert "de: missing desc" in cases["Consistency across locales"].error["message"]
    assert any("$USER$" in w for w in result.warnings)


def test_custom_suite_and_plugins(extension, config_for):
    seen = []

    class Plugin:
        def register(self, checker):
            checker.add_suite(TestSuite("From plugin").test("ok", lambda ctx: seen.append(ctx.root)))

    checker = ExtensionChecker(config_for(extension))
    checker.use(Plugin()).use(lambda c: c.add_suite(TestSuite("From callable").test("ok", lambda ctx: None)))
    result = checker.run()
    assert [s.name for s in result.suites] == ["From plugin", "From callable"]
    assert seen == [extension.resolve()]

    with pytest.raises(TypeError):
        checker.use(42)


def test_missing_extension_directory(tmp_path, config_for):
    checker = ExtensionChecker(config_for(tmp_path / "missing"))
    with pytest.raises(ExtensionNotFoundError):
        checker.scan()
    with pytest.raises(ExtensionNotFoundError):
        checker.run()


def test_cache_stats_and_clear(extension, config_for):
    checker = ExtensionChecker(config_for(extension))
    checker.run(incremental=True)
    stats = checker.cache_stats()
    assert stats["exists"] is True
    assert stats["lastTestMode"] == "full"

    checker.clear_cache()
    assert checker.cache_stats()["exists"] is False


def test_rerun_on_same_checker_sees_edited_files(extension, config_for):
    checker = ExtensionChecker(config_for(extension))
    first = checker.run()
    assert cases_by_name(first)["Safe innerHTML usage"].status != FAILED

    (extension / "popup.js").write_text("function show(el, userInput) {\n  el.innerHTML = userInput;\n}\n")
    second = checker.run()
    case = cases_by_name(second)["Safe innerHTML usage"]
    assert case.status == FAILED
    assert "popup.js:2" in case.error["message"]


def test_full_run_after_incremental_run_scans_whole_tree(make_extension, config_for):
    root = make_extension({
        "src/render.js": RENDER_JS,
        "src/store.js": "export const items = [];\n",
        "styles/theme.css": "body { color: black; }\n",
    })
    checker = ExtensionChecker(config_for(root))
    checker.run(incremental=True)

    (root / "styles" / "theme.css").write_text("body { color: blue; }\n")
    narrowed = checker.run(incremental=True)
    assert [s.category for s in narrowed.suites] == ["performance"]

    full = checker.run()
    assert cases_by_name(full)["Safe innerHTML usage"].status == FAILED
