"""
Utility functions for the extension checker.
"""

import bisect
import importlib
import re
from pathlib import Path, PurePosixPath
from typing import Any, List, Optional, Tuple, Union

SCRIPT_EXTENSIONS = (".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx")
MARKUP_EXTENSIONS = (".html", ".htm")
STYLE_EXTENSIONS = (".css",)

MANIFEST_FILE = "manifest.json"

_TEST_FILE_PATTERNS = (
    re.compile(r"\.test\.(js|ts)$"),
    re.compile(r"\.spec\.(js|ts)$"),
    re.compile(r"(^|/)test-[^/]*\.(js|ts)$"),
    re.compile(r"-test\.(js|ts)$"),
    re.compile(r"(^|/)tests?/"),
    re.compile(r"(^|/)__tests__/"),
)
_CONFIG_FILE = re.compile(r"(^|/)[^/]*(config|settings|\.env)[^/]*$", re.IGNORECASE)


def to_posix(path: Union[str, Path]) -> str:
    """Path string with forward slashes."""
    return str(path).replace("\\", "/")


def line_starts(content: str) -> List[int]:
    """Offsets at which each line begins (index 0 is line 1)."""
    starts = [0]
    pos = content.find("\n")
    while pos != -1:
        starts.append(pos + 1)
        pos = content.find("\n", pos + 1)
    return starts


def offset_to_line_col(starts: List[int], offset: int) -> Tuple[int, int]:
    """1-based (line, column) for an offset, given line_starts() output."""
    idx = bisect.bisect_right(starts, offset) - 1
    return idx + 1, offset - starts[idx] + 1


def line_at(content: str, offset: int) -> str:
    """Full source line containing offset."""
    start = content.rfind("\n", 0, offset) + 1
    end = content.find("\n", offset)
    if end == -1:
        end = len(content)
    return content[start:end]


def is_test_file(path: Union[str, Path, None]) -> bool:
    """True if the path looks like a test or spec file."""
    if not path:
        return False
    p = to_posix(path)
    return any(rx.search(p) for rx in _TEST_FILE_PATTERNS)


def analyze_extension_context(path: Union[str, Path]) -> str:
    """Extension context of a script judged by its file name."""
    name = to_posix(path).lower()
    if "background" in name or "service-worker" in name or "service_worker" in name:
        return "background"
    if "content" in name:
        return "content"
    if "popup" in name:
        return "popup"
    if "options" in name:
        return "options"
    if "devtools" in name:
        return "devtools"
    return "unknown"


def detect_file_role(path: Union[str, Path, None]) -> Optional[str]:
    """Role of a file for severity adjustment: test, config, background-script, or None."""
    if not path:
        return None
    if is_test_file(path):
        return "test"
    p = to_posix(path)
    if PurePosixPath(p).name != MANIFEST_FILE and _CONFIG_FILE.search(p):
        return "config"
    if analyze_extension_context(p) == "background":
        return "background-script"
    return None


def load_object(ref: str) -> Any:
    """Import ``"package.module:attr"`` and return the attribute."""
    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Expected 'module:attribute', got {ref!r}")
    module = importlib.import_module(module_name)
    obj: Any = module
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj
