"""
Structure Validation: packaging hygiene and files referenced from the manifest.
"""

import fnmatch

from ..errors import StructureError
from ..issue import Severity
from ..relationships import build_dependency_graph, detect_cycles
from ..utils import MANIFEST_FILE
from .base import ExtensionSuite

REQUIRED_FILES = (MANIFEST_FILE,)

DEVELOPMENT_FILES = (
    ".gitattributes", "package.json", "package-lock.json", "yarn.lock", "pnpm-lock.yaml",
    ".env", ".env.local", ".env.development",
    "webpack.config.js", "rollup.config.js", "vite.config.js", "tsconfig.json", "babel.config.js",
    ".eslintrc", ".eslintrc.json", ".prettierrc", "Makefile", "Dockerfile",
    "*.map", "*.test.js", "*.spec.js",
)
DEVELOPMENT_DIRS = ("node_modules", ".git")


def manifest_references(manifest):
    """Extension-relative file paths declared in a manifest."""
    refs = []

    def add(value):
        if isinstance(value, str) and value and "://" not in value:
            refs.append(value.lstrip("/"))

    background = manifest.get("background")
    if isinstance(background, dict):
        add(background.get("service_worker"))
        for script in background.get("scripts") or []:
            add(script)
        add(background.get("page"))
    for script in manifest.get("content_scripts") or []:
        for rel in list(script.get("js") or []) + list(script.get("css") or []):
            add(rel)
    for key in ("action", "browser_action", "page_action"):
        action = manifest.get(key)
        if isinstance(action, dict):
            add(action.get("default_popup"))
            icon = action.get("default_icon")
            if isinstance(icon, dict):
                for rel in icon.values():
                    add(rel)
            else:
                add(icon)
    add(manifest.get("options_page"))
    if isinstance(manifest.get("options_ui"), dict):
        add(manifest["options_ui"].get("page"))
    add(manifest.get("devtools_page"))
    if isinstance(manifest.get("side_panel"), dict):
        add(manifest["side_panel"].get("default_path"))
    for rel in (manifest.get("icons") or {}).values():
        add(rel)
    return refs


class StructureSuite(ExtensionSuite):
    key = "structure"
    title = "Structure Validation"
    summary = "Checks the file layout of the extension package"

    def setup_tests(self):
        self.test("Required files present", self.check_required)
        self.test("No development files", self.check_development_files)
        self.test("Referenced files exist", self.check_references)
        self.test("No circular references", self.check_cycles, severity=Severity.WARNING)

    def check_required(self, ctx):
        missing = [f for f in REQUIRED_FILES if not self.file_exists(f)]
        if missing:
            raise StructureError(f"Missing required files: {', '.join(missing)}")

    def check_development_files(self, ctx):
        found = [d + "/" for d in DEVELOPMENT_DIRS if self.path(d).is_dir()]
        for rel in self.get_all_files(ctx):
            name = rel.rsplit("/", 1)[-1]
            if any(fnmatch.fnmatchcase(name, pattern) for pattern in DEVELOPMENT_FILES):
                found.append(rel)
        if found:
            raise StructureError(
                f"Development files found: {', '.join(found)}",
                suggestion="Exclude build tooling and source maps from the packaged extension",
            )

    def check_references(self, ctx):
        missing = sorted({rel for rel in manifest_references(self.load_manifest()) if not self.file_exists(rel)})
        if missing:
            raise StructureError(f"Referenced files not found: {', '.join(missing)}")

    def check_cycles(self, ctx):
        graph = build_dependency_graph(ctx.toolkit.matcher.base_dir, ctx.toolkit.files())
        cycles = detect_cycles(graph)
        if cycles:
            shown = "; ".join(" -> ".join(c + [c[0]]) for c in cycles)
            raise StructureError(f"Circular references: {shown}")


def build(config):
    return StructureSuite(config)
