"""Reference detection between extension files (imports, script tags, stylesheets)."""

import re
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional, Set

from .utils import MARKUP_EXTENSIONS, SCRIPT_EXTENSIONS, STYLE_EXTENSIONS, to_posix

_SCRIPT_REFS = (
    re.compile(r"""\bimport\s+(?:[\w*{}\s,$]+\s+from\s+)?['"]([^'"]+)['"]"""),
    re.compile(r"""\bimport\s*\(\s*['"]([^'"]+)['"]\s*\)"""),
    re.compile(r"""\brequire\s*\(\s*['"]([^'"]+)['"]\s*\)"""),
)
_IMPORT_SCRIPTS = re.compile(r"\bimportScripts\s*\(([^)]*)\)")
_QUOTED = re.compile(r"""['"]([^'"]+)['"]""")
_MARKUP_REFS = (
    re.compile(r"""<script[^>]+\bsrc\s*=\s*['"]([^'"]+)['"]""", re.IGNORECASE),
    re.compile(r"""<link[^>]+\bhref\s*=\s*['"]([^'"]+)['"]""", re.IGNORECASE),
)
_STYLE_REFS = (
    re.compile(r"""@import\s+(?:url\()?\s*['"]?([^'")\s;]+)"""),
    re.compile(r"""url\(\s*['"]?([^'")]+)['"]?\s*\)"""),
)


def extract_references(rel_path: str, content: str) -> List[str]:
    """Raw reference strings found in a file, in order of appearance."""
    suffix = PurePosixPath(rel_path).suffix.lower()
    refs: List[str] = []
    if suffix in SCRIPT_EXTENSIONS:
        for rx in _SCRIPT_REFS:
            refs.extend(m.group(1) for m in rx.finditer(content))
        for m in _IMPORT_SCRIPTS.finditer(content):
            refs.extend(_QUOTED.findall(m.group(1)))
    elif suffix in MARKUP_EXTENSIONS:
        for rx in _MARKUP_REFS:
            refs.extend(m.group(1) for m in rx.finditer(content))
    elif suffix in STYLE_EXTENSIONS:
        for rx in _STYLE_REFS:
            refs.extend(m.group(1) for m in rx.finditer(content))
    return refs


def resolve_reference(ref: str, from_file: str, known: Set[str]) -> Optional[str]:
    """Resolve ``ref`` against the referencing file (or the root for absolute refs)."""
    if "://" in ref or ref.startswith(("data:", "#", "chrome:")):
        return None
    ref = ref.split("?", 1)[0].split("#", 1)[0]
    if ref.startswith("/"):
        base = PurePosixPath(ref.lstrip("/"))
    else:
        base = PurePosixPath(from_file).parent / ref
    parts: List[str] = []
    for part in base.parts:
        if part == "..":
            if not parts:
                return None
            parts.pop()
        elif part != ".":
            parts.append(part)
    candidate = "/".join(parts)
    for option in (candidate, candidate + ".js", candidate + "/index.js"):
        if option in known:
            return option
    return None


def build_dependency_graph(root: Path, files: Iterable[Path]) -> Dict[str, Dict[str, List[str]]]:
    """
    Map each base-relative file to what it references and what references it.

    Returns:
        ``{file: {"imports": [...], "imported_by": [...]}}``
    """
    rels = {to_posix(Path(f).relative_to(root)): Path(f) for f in files}
    known = set(rels)
    graph: Dict[str, Dict[str, List[str]]] = {rel: {"imports": [], "imported_by": []} for rel in rels}
    for rel, path in rels.items():
        if PurePosixPath(rel).suffix.lower() not in SCRIPT_EXTENSIONS + MARKUP_EXTENSIONS + STYLE_EXTENSIONS:
            continue
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        for ref in extract_references(rel, content):
            target = resolve_reference(ref, rel, known)
            if target and target != rel and target not in graph[rel]["imports"]:
                graph[rel]["imports"].append(target)
                graph[target]["imported_by"].append(rel)
    return graph


def detect_cycles(graph: Dict[str, Dict[str, List[str]]]) -> List[List[str]]:
    """Reference cycles, each normalized to start at its smallest member."""
    cycles: List[List[str]] = []
    visited: Set[str] = set()
    stack: List[str] = []
    on_stack: Set[str] = set()

    def dfs(node: str) -> None:
        visited.add(node)
        stack.append(node)
        on_stack.add(node)
        for neighbor in graph.get(node, {}).get("imports", []):
            if neighbor in on_stack:
                cycle = stack[stack.index(neighbor):]
                start = cycle.index(min(cycle))
                normalized = cycle[start:] + cycle[:start]
                if normalized not in cycles:
                    cycles.append(normalized)
            elif neighbor not in visited:
                dfs(neighbor)
        stack.pop()
        on_stack.discard(node)

    for node in sorted(graph):
        if node not in visited:
            dfs(node)
    return cycles
