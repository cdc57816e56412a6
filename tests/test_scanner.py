import pytest

from extension_checker.errors import ScanError
from extension_checker.scanner import ContextAwareScanner, ContextMask, extract_assigned_value

SINK = "el.innerHTML = userInput;"


def _file_with_sink_at(line, total=2100):
    lines = [f"const filler{i} = {i};" for i in range(total)]
    lines[line - 1] = SINK
    return "\n".join(lines) + "\n"


@pytest.mark.parametrize("line", [4, 500, 1660, 2000])
def test_reported_line_matches_injected_line(line):
    issues = ContextAwareScanner().detect(_file_with_sink_at(line), "src/render.js")
    sinks = [i for i in issues if i.type == "unsafe-innerHTML"]
    assert len(sinks) == 1
    assert sinks[0].line == line
    assert sinks[0].column == 3
    assert sinks[0].context == SINK


@pytest.mark.parametrize("content", [
    "// el.innerHTML = userInput;\n",
    "/* start\n el.innerHTML = userInput;\n end */\n",
    "const s = 'el.innerHTML = userInput;';\n",
    'const s = "el.innerHTML = userInput;";\n',
    "const s = `\n el.innerHTML = userInput;\n`;\n",
])
def test_matches_in_comments_and_strings_are_dropped(content):
    assert ContextAwareScanner().detect(content, "popup.js") == []


def test_code_after_comment_still_scanned():
    content = "/* note */ el.innerHTML = userInput;\n// trailing\n"
    issues = ContextAwareScanner().detect(content, "popup.js")
    assert [i.type for i in issues] == ["unsafe-innerHTML"]


def test_unterminated_quote_ends_at_newline():
    content = "const broken = 'oops\nel.innerHTML = userInput;\n"
    issues = ContextAwareScanner().detect(content, "popup.js")
    assert [(i.type, i.line) for i in issues] == [("unsafe-innerHTML", 2)]


@pytest.mark.parametrize("value", [
    "'<b>static</b>'",
    '"plain text"',
    "`no interpolation`",
    "DOMPurify.sanitize(html)",
    "chrome.i18n.getMessage('title')",
])
def test_safe_assignments_not_reported(value):
    content = f"el.innerHTML = {value};\n"
    assert ContextAwareScanner().detect(content, "popup.js") == []


@pytest.mark.parametrize("value", ["userInput", "`<p>${name}</p>`", "data.html"])
def test_dynamic_assignments_reported(value):
    content = f"el.innerHTML = {value};\n"
    issues = ContextAwareScanner().detect(content, "popup.js")
    assert len(issues) == 1
    assert issues[0].severity == "high"
    assert issues[0].assigned_value == value


def test_strict_mode_disables_safe_patterns():
    content = "el.innerHTML = '<b>hi</b>';\n"
    assert ContextAwareScanner().detect(content, "popup.js") == []
    issues = ContextAwareScanner(strict_mode=True).detect(content, "popup.js")
    assert [i.type for i in issues] == ["unsafe-innerHTML"]


def test_detect_is_pure():
    scanner = ContextAwareScanner()
    content = "eval(code);\nconsole.log('x');\n"
    assert scanner.detect(content, "popup.js") == scanner.detect(content, "popup.js")


def test_rules_apply_by_extension():
    scanner = ContextAwareScanner()
    assert scanner.detect("el.innerHTML = userInput;", "notes.txt") == []
    html = "<html><script>alert(1)</script></html>\n"
    assert [i.type for i in scanner.detect(html, "popup.html")] == ["inline-script"]
    assert scanner.detect('<script src="a.js"></script>', "popup.html") == []


def test_html_comments_are_masked():
    html = "<!-- <script>alert(1)</script> -->\n"
    assert ContextAwareScanner().detect(html, "popup.html") == []


def test_console_message_names_method():
    issues = ContextAwareScanner().detect("console.debug('x');\n", "popup.js")
    assert issues[0].message == "console.debug() left in extension code"


def test_console_error_in_catch_is_ignored():
    content = "try { run(); } catch (e) { console.error(e); }\n"
    assert ContextAwareScanner().detect(content, "popup.js") == []


def test_background_localstorage_is_high():
    issues = ContextAwareScanner().detect("localStorage.setItem('k', v);\n", "background.js")
    assert issues[0].severity == "high"
    assert issues[0].extension_context == "background"


def test_scan_file_rejects_binary(tmp_path):
    path = tmp_path / "blob.js"
    path.write_bytes(b"var a = 1;\x00\x01")
    with pytest.raises(ScanError):
        ContextAwareScanner().scan_file(path)


def test_scan_files_skips_unreadable_with_warning(tmp_path):
    good = tmp_path / "good.js"
    good.write_text("eval(x);\n")
    bad = tmp_path / "bad.js"
    bad.write_bytes(b"\xff\xfe\x00broken")

    class Sink:
        def __init__(self):
            self.messages = []

        def warn(self, message, source=None, **data):
            self.messages.append(message)

    sink = Sink()
    issues = ContextAwareScanner().scan_files([bad, good], tmp_path, sink)
    assert [(i.type, i.file) for i in issues] == [("eval", "good.js")]
    assert len(sink.messages) == 1
    assert "bad.js" in sink.messages[0]


def test_custom_mask_factory():
    scanner = ContextAwareScanner(mask_factory=lambda content, path: ContextMask())
    issues = scanner.detect("// eval(x)\n", "popup.js")
    assert [i.type for i in issues] == ["eval"]


def test_extract_assigned_value_stops_at_statement_end():
    content = "x.innerHTML = fn(a, b); next();"
    start = content.index("fn")
    assert extract_assigned_value(content, start) == "fn(a, b)"
