from extension_checker.relationships import (
    build_dependency_graph,
    detect_cycles,
    extract_references,
    resolve_reference,
)

from conftest import write_tree


def test_script_references():
    content = (
        "import { a } from './a.js';\n"
        "import './side-effect';\n"
        "const b = require('../lib/b');\n"
        "const lazy = import('./lazy.js');\n"
        "importScripts('vendor/x.js', 'vendor/y.js');\n"
    )
    assert extract_references("src/main.js", content) == [
        "./a.js", "./side-effect", "./lazy.js", "../lib/b", "vendor/x.js", "vendor/y.js",
    ]


def test_markup_and_style_references():
    html = '<link rel="stylesheet" href="popup.css"><script src="popup.js"></script>'
    assert extract_references("popup.html", html) == ["popup.js", "popup.css"]
    css = "@import 'base.css';\nbody { background: url(\"img/bg.png\"); }\n"
    assert extract_references("styles/main.css", css) == ["base.css", "img/bg.png"]
    assert extract_references("notes.txt", "import './a.js'") == []


def test_resolve_reference():
    known = {"src/a.js", "src/lib/index.js", "lib/b.js", "popup.css"}
    assert resolve_reference("./a.js", "src/main.js", known) == "src/a.js"
    assert resolve_reference("./a", "src/main.js", known) == "src/a.js"
    assert resolve_reference("./lib", "src/main.js", known) == "src/lib/index.js"
    assert resolve_reference("../lib/b", "src/main.js", known) == "lib/b.js"
    assert resolve_reference("/popup.css?v=2", "pages/x.html", known) == "popup.css"
    assert resolve_reference("https://cdn.example.com/a.js", "src/main.js", known) is None
    assert resolve_reference("../../escape.js", "src/main.js", known) is None
    assert resolve_reference("./missing.js", "src/main.js", known) is None


def test_dependency_graph_and_cycles(tmp_path):
    write_tree(tmp_path, {
        "popup.html": '<script src="popup.js"></script>',
        "popup.js": "import './util.js';\n",
        "util.js": "import './popup.js';\n",
        "icon.png": "png",
    })
    files = sorted(p for p in tmp_path.rglob("*") if p.is_file())
    graph = build_dependency_graph(tmp_path, files)

    assert graph["popup.html"] == {"imports": ["popup.js"], "imported_by": []}
    assert sorted(graph["popup.js"]["imported_by"]) == ["popup.html", "util.js"]
    assert graph["icon.png"] == {"imports": [], "imported_by": []}
    assert detect_cycles(graph) == [["popup.js", "util.js"]]


def test_acyclic_graph_has_no_cycles():
    graph = {
        "a.js": {"imports": ["b.js"], "imported_by": []},
        "b.js": {"imports": ["c.js"], "imported_by": ["a.js"]},
        "c.js": {"imports": [], "imported_by": ["b.js"]},
    }
    assert detect_cycles(graph) == []
