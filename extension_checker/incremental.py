"""
Incremental change tracking.

The cache file records the last run time, a content hash per file, the last
run summary, and a reverse-dependency map. ``determine_targets`` compares the
tree against it and decides whether to run everything, a subset of suites,
or nothing. New hashes are only persisted by ``record_run``, so a run that is
planned but never executed does not hide its changes from the next one.
"""

import hashlib
import json
import logging
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from .config import CONFIG_FILE_NAMES, DEFAULT_CACHE_FILE
from .errors import CacheError
from .path_matcher import PathMatcher
from .utils import MANIFEST_FILE, MARKUP_EXTENSIONS, SCRIPT_EXTENSIONS, STYLE_EXTENSIONS, to_posix

logger = logging.getLogger(__name__)

FULL = "full"
INCREMENTAL = "incremental"
NONE = "none"

CRITICAL_FILES = (MANIFEST_FILE,) + CONFIG_FILE_NAMES
GIT_TIMEOUT = 10


def empty_cache() -> Dict[str, Any]:
    return {"lastRun": None, "fileHashes": {}, "testResults": {}, "dependencies": {}}


def file_hash(path: Path) -> Optional[str]:
    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except OSError as e:
        logger.debug("Could not hash %s: %s", path, e)
        return None


@dataclass
class Targets:
    mode: str
    files: List[str] = field(default_factory=list)
    suites: List[str] = field(default_factory=list)
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"mode": self.mode, "files": list(self.files), "suites": list(self.suites), "reason": self.reason}


def suites_for_file(rel_path: str) -> Set[str]:
    """Suite keys affected by a change to ``rel_path``."""
    name = rel_path.rsplit("/", 1)[-1]
    suffix = Path(name).suffix.lower()
    suites: Set[str] = set()
    if name == MANIFEST_FILE:
        suites.update(("manifest", "structure"))
    if suffix in SCRIPT_EXTENSIONS:
        suites.update(("security", "performance"))
        if "background" in name or "service-worker" in name:
            suites.add("manifest")
    if suffix in STYLE_EXTENSIONS:
        suites.add("performance")
    if suffix in MARKUP_EXTENSIONS:
        suites.update(("security", "structure"))
    if rel_path.startswith("_locales/") or "/_locales/" in rel_path:
        suites.add("localization")
    if not suites:
        # other assets (images, fonts) can only break file references
        suites.add("structure")
    return suites


class IncrementalTracker:
    """Change detection against a persisted JSON cache."""

    def __init__(
        self,
        base_dir: Union[str, Path],
        cache_file: Union[str, Path] = DEFAULT_CACHE_FILE,
        matcher: Optional[PathMatcher] = None,
    ):
        self.base_dir = Path(base_dir).resolve()
        cache_path = Path(cache_file)
        self.cache_file = cache_path if cache_path.is_absolute() else self.base_dir / cache_path
        self.matcher = matcher or PathMatcher(self.base_dir)
        self.load_warning: Optional[str] = None
        self.cache = self._load()
        self._current: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, Any]:
        cache = empty_cache()
        if not self.cache_file.exists():
            return cache
        try:
            data = json.loads(self.cache_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self.load_warning = f"Failed to load cache file {self.cache_file.name}: {e}; running as if no cache exists"
            logger.warning(self.load_warning)
            return cache
        if not isinstance(data, dict):
            self.load_warning = f"Cache file {self.cache_file.name} is not a JSON object; ignoring it"
            logger.warning(self.load_warning)
            return cache
        for key, default in cache.items():
            value = data.get(key, default)
            if default is not None and not isinstance(value, type(default)):
                value = default
            cache[key] = value
        return cache

    # --- files ---

    def _rel(self, path: Union[str, Path]) -> str:
        p = Path(path)
        if p.is_absolute():
            try:
                return to_posix(p.resolve().relative_to(self.base_dir))
            except ValueError:
                return to_posix(p)
        return to_posix(p)

    def tracked_files(self) -> List[Path]:
        cache_path = self.cache_file.resolve()
        return [p for p in self.matcher.walk(self.base_dir) if p.resolve() != cache_path]

    def current_hashes(self) -> Dict[str, str]:
        if self._current is None:
            hashes = {}
            for path in self.tracked_files():
                digest = file_hash(path)
                if digest is not None:
                    hashes[self._rel(path)] = digest
            self._current = hashes
        return dict(self._current)

    def hash_changes(self) -> Set[str]:
        """Files added, modified, or removed since the cached hashes."""
        current = self.current_hashes()
        cached = self.cache["fileHashes"]
        changed = {rel for rel, digest in current.items() if cached.get(rel) != digest}
        changed.update(rel for rel in cached if rel not in current)
        return changed

    def git_changes(self) -> Set[str]:
        try:
            proc = subprocess.run(
                ["git", "diff", "--name-only", "HEAD"],
                cwd=self.base_dir, capture_output=True, text=True, timeout=GIT_TIMEOUT,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("Git change detection failed: %s", e)
            return set()
        if proc.returncode != 0:
            logger.warning("Git change detection failed: %s", proc.stderr.strip() or f"exit {proc.returncode}")
            return set()
        files = set()
        for line in proc.stdout.splitlines():
            line = line.strip()
            if line and not self.matcher.should_exclude(line):
                files.add(to_posix(line))
        return files

    def mtime_changes(self, since: Union[str, float, datetime]) -> Set[str]:
        cutoff = _timestamp(since)
        changed = set()
        for path in self.tracked_files():
            try:
                if path.stat().st_mtime > cutoff:
                    changed.add(self._rel(path))
            except OSError:
                continue
        return changed

    def changed_files(self, use_git: bool = False, since: Optional[Union[str, float, datetime]] = None) -> List[str]:
        changed = self.hash_changes()
        if use_git:
            changed |= self.git_changes()
        if since is not None:
            changed |= self.mtime_changes(since)
        return sorted(changed)

    def affected_files(self, changed: Iterable[str]) -> List[str]:
        """Changed files plus their recorded dependents."""
        affected = set(changed)
        for rel in list(affected):
            affected.update(self.cache["dependencies"].get(rel, []))
        return sorted(affected)

    def affected_suites(self, files: Iterable[str]) -> List[str]:
        suites: Set[str] = set()
        for rel in files:
            suites |= suites_for_file(rel)
        return sorted(suites)

    # --- decision ---

    def determine_targets(
        self,
        force_full: bool = False,
        use_git: bool = False,
        since: Optional[Union[str, float, datetime]] = None,
    ) -> Targets:
        if force_full:
            return Targets(FULL, reason="Forced full run")
        if not self.cache["lastRun"]:
            return Targets(FULL, reason="No previous run recorded")

        changed = self.changed_files(use_git=use_git, since=since)
        for rel in changed:
            if rel in CRITICAL_FILES:
                return Targets(FULL, files=changed, reason=f"{rel} changed")
        if not changed:
            return Targets(NONE, reason="No changes detected")

        files = self.affected_files(changed)
        return Targets(
            INCREMENTAL,
            files=files,
            suites=self.affected_suites(files),
            reason=f"{len(changed)} file(s) changed",
        )

    # --- persistence ---

    def record_run(self, summary: Optional[Dict[str, Any]] = None, mode: str = FULL) -> None:
        """Store run time, current hashes, and summary, then save."""
        timestamp = datetime.now(timezone.utc).isoformat()
        self.cache["lastRun"] = timestamp
        self.cache["fileHashes"] = self.current_hashes()
        self.cache["testResults"] = {"timestamp": timestamp, "summary": summary or {}, "mode": mode}
        self._current = None
        self.save()

    def update_dependencies(self, file: Union[str, Path], dependents: Iterable[Union[str, Path]]) -> None:
        """Record files to re-check whenever ``file`` changes."""
        self.cache["dependencies"][self._rel(file)] = [self._rel(d) for d in dependents]

    def set_dependencies(self, mapping: Dict[str, Iterable[Union[str, Path]]]) -> None:
        """Replace the whole dependency map; files absent from ``mapping`` lose their entry."""
        self.cache["dependencies"] = {
            self._rel(file): [self._rel(d) for d in dependents] for file, dependents in mapping.items()
        }

    def save(self) -> None:
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            self.cache_file.write_text(json.dumps(self.cache, indent=2), encoding="utf-8")
        except OSError as e:
            raise CacheError(f"Failed to save cache: {e}", details={"path": str(self.cache_file)}) from e
        logger.debug("Saved cache to %s", self.cache_file)

    def clear_cache(self) -> None:
        """Forget all state and delete the cache file."""
        self.cache = empty_cache()
        self._current = None
        try:
            self.cache_file.unlink(missing_ok=True)
        except OSError as e:
            raise CacheError(f"Failed to clear cache: {e}", details={"path": str(self.cache_file)}) from e
        logger.info("Cache cleared")

    def stats(self) -> Dict[str, Any]:
        results = self.cache.get("testResults") or {}
        stats: Dict[str, Any] = {
            "cacheFile": str(self.cache_file),
            "exists": self.cache_file.exists(),
            "lastRun": self.cache["lastRun"],
            "cachedFiles": len(self.cache["fileHashes"]),
            "lastTestMode": results.get("mode"),
            "lastTestSummary": results.get("summary"),
        }
        if self.cache["lastRun"]:
            try:
                elapsed = datetime.now(timezone.utc).timestamp() - _timestamp(self.cache["lastRun"])
            except ValueError:
                elapsed = None
            if elapsed is not None:
                minutes = int(elapsed // 60)
                hours = minutes // 60
                stats["timeSinceLastRun"] = f"{hours} hours ago" if hours else f"{minutes} minutes ago"
        return stats


def _timestamp(value: Union[str, float, datetime]) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, (int, float)):
        return float(value)
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()
