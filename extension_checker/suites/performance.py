"""
Performance Validation: size limits and leftover debugging code.
"""

import re
from collections import Counter

from ..errors import PerformanceError
from ..issue import Severity
from ..scanner import default_mask
from ..utils import SCRIPT_EXTENSIONS
from .base import ExtensionSuite

DEBUGGER_RE = re.compile(r"\bdebugger\s*;")


def _format_size(size: int) -> str:
    if size >= 1024 * 1024:
        return f"{size / 1024 / 1024:.1f}MB"
    if size >= 1024:
        return f"{size / 1024:.0f}KB"
    return f"{size}B"


class PerformanceSuite(ExtensionSuite):
    key = "performance"
    title = "Performance Validation"
    summary = "Checks file sizes and runtime overhead"

    def setup_tests(self):
        self.test("File size limits", self.check_file_sizes)
        self.test("Total extension size", self.check_total_size)
        self.test("No excessive console logging", self.check_console, severity=Severity.WARNING)
        self.test("No debugger statements", self.check_debugger)

    def check_file_sizes(self, ctx):
        limit = ctx.config.max_file_size
        large = []
        for rel in self.get_all_files(ctx):
            size = self.get_file_size(rel)
            if size > limit:
                large.append(f"{rel} ({_format_size(size)})")
            elif size > limit // 2:
                ctx.warn(f"Large file: {rel} ({_format_size(size)})")
        if large:
            raise PerformanceError(
                f"{len(large)} file(s) exceed {_format_size(limit)}: {', '.join(large)}",
                suggestion="Minify or split large files, and compress images",
            )

    def check_total_size(self, ctx):
        total = sum(self.get_file_size(rel) for rel in self.get_all_files(ctx))
        limit = ctx.config.max_total_size
        if total > limit:
            raise PerformanceError(f"Extension size {_format_size(total)} exceeds {_format_size(limit)}")

    def check_console(self, ctx):
        per_file = Counter(issue.file for issue in ctx.toolkit.issues("console"))
        threshold = ctx.config.console_threshold
        noisy = {f: n for f, n in per_file.items() if n > threshold}
        if noisy:
            detail = ", ".join(f"{f} ({n})" for f, n in sorted(noisy.items()))
            raise PerformanceError(f"Excessive console logging (more than {threshold} calls): {detail}")

    def check_debugger(self, ctx):
        found = []
        for rel in self.get_all_files(ctx, SCRIPT_EXTENSIONS):
            content = self.load_file(rel)
            mask = default_mask(content, rel)
            if any(not mask.excludes(m.start()) for m in DEBUGGER_RE.finditer(content)):
                found.append(rel)
        if found:
            raise PerformanceError(f"debugger statement found in {', '.join(found)}")


def build(config):
    return PerformanceSuite(config)
