"""
Configuration loading and validation.

Configuration is data only: JSON files, ``EXTCHECK_*`` environment variables,
and keyword overrides, merged on top of the selected profile and validated
with pydantic before anything is scanned. Executable plugins are opt-in.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .profiles import ProfileNotFound, get_profile, merge_layers, profile_names
from .severity import IGNORE_IN_TEST_FILES, parse_level
from .utils import load_object

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = (
    ".extension-checker.json",
    "extension-checker.config.json",
    ".extensionrc.json",
)
ENV_PREFIX = "EXTCHECK_"
DEFAULT_CACHE_FILE = ".extension-checker-cache.json"
MIN_TIMEOUT = 1.0
MAX_REASONABLE_TIMEOUT = 600.0

# EXTCHECK_<NAME> -> config key
ENV_KEYS = {
    "EXTENSION_PATH": "extensionPath",
    "PROFILE": "profile",
    "ENVIRONMENT": "environment",
    "TIMEOUT": "timeout",
    "PARALLEL": "parallel",
    "MAX_WORKERS": "maxWorkers",
    "FAIL_ON_ERROR": "failOnError",
    "FAIL_ON_WARNING": "failOnWarning",
    "STRICT_MODE": "strictMode",
    "QUICK": "quick",
    "CACHE_FILE": "cacheFile",
    "CONTEXT": "context",
}

_LIST_KEYS = ("exclude", "include", "skipTests")


class ExcludePatterns(BaseModel):
    """Structured exclude patterns."""

    directories: List[str] = Field(default_factory=list)
    files: List[str] = Field(default_factory=list)
    by_context: Dict[str, List[str]] = Field(default_factory=dict, alias="byContext")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    def as_dict(self) -> Dict[str, Any]:
        return {"directories": self.directories, "files": self.files, "byContext": self.by_context}


class KnownIssue(BaseModel):
    """An accepted issue: downgraded to INFO with its reason attached."""

    file: str = Field(..., description="File path or glob")
    issue: str = Field(..., description="Issue type, or * for any")
    reason: str = Field(default="", description="Justification shown in reports")


class WarningLevel(BaseModel):
    """Object form of a warningLevels entry."""

    severity: str = "warn"
    exclude_files: List[str] = Field(default_factory=list, alias="excludeFiles")
    threshold: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("severity")
    @classmethod
    def _known_level(cls, v: str) -> str:
        if parse_level(v) is None:
            raise ValueError(f"unknown severity level {v!r}")
        return v

    def as_dict(self) -> Dict[str, Any]:
        return {"severity": self.severity, "excludeFiles": self.exclude_files, "threshold": self.threshold}


class CheckerConfig(BaseModel):
    """Validated checker configuration."""

    extension_path: str = Field(default=".", alias="extensionPath")
    exclude: List[str] = Field(default_factory=list)
    include: List[str] = Field(default_factory=list)
    exclude_patterns: ExcludePatterns = Field(default_factory=ExcludePatterns, alias="excludePatterns")
    include_dotfiles: bool = Field(default=False, alias="includeDotfiles")
    context: Optional[str] = None
    warning_levels: Dict[str, Union[str, WarningLevel]] = Field(default_factory=dict, alias="warningLevels")
    known_issues: List[KnownIssue] = Field(default_factory=list, alias="knownIssues")
    profile: Optional[str] = None
    profiles: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    environment: Optional[Literal["development", "test", "production"]] = None
    strict_mode: bool = Field(default=False, alias="strictMode")
    timeout: float = Field(default=30.0, gt=0, description="Per-case timeout in seconds")
    parallel: bool = False
    max_workers: Optional[int] = Field(default=None, ge=1, alias="maxWorkers")
    watch: bool = False
    fail_on_error: bool = Field(default=True, alias="failOnError")
    fail_on_warning: bool = Field(default=False, alias="failOnWarning")
    quick: bool = False
    skip_tests: List[str] = Field(default_factory=list, alias="skipTests")
    suites: Optional[List[Literal["manifest", "security", "performance", "structure", "localization"]]] = None
    rules: List[Dict[str, Any]] = Field(default_factory=list)
    safe_patterns: Dict[str, List[Union[str, Dict[str, str]]]] = Field(default_factory=dict, alias="safePatterns")
    cache_file: str = Field(default=DEFAULT_CACHE_FILE, alias="cacheFile")
    plugins: List[str] = Field(default_factory=list)
    allow_plugins: bool = Field(default=False, alias="allowPlugins")
    max_file_size: int = Field(default=1_000_000, gt=0, alias="maxFileSize")
    max_total_size: int = Field(default=10_000_000, gt=0, alias="maxTotalSize")
    console_threshold: int = Field(default=10, ge=0, alias="consoleThreshold")
    warnings: List[str] = Field(default_factory=list, exclude=True)

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @field_validator("exclude", "include", "skip_tests", mode="before")
    @classmethod
    def _str_to_list(cls, v):
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("warning_levels")
    @classmethod
    def _known_levels(cls, v: Dict[str, Union[str, WarningLevel]]):
        for key, level in v.items():
            if isinstance(level, str) and level != IGNORE_IN_TEST_FILES and parse_level(level) is None:
                raise ValueError(f"invalid warning level for {key}: {level!r}")
        return v

    @property
    def root(self) -> Path:
        return Path(self.extension_path).expanduser().resolve()

    @property
    def cache_path(self) -> Path:
        p = Path(self.cache_file).expanduser()
        return p if p.is_absolute() else self.root / p

    def warning_levels_data(self) -> Dict[str, Any]:
        """warningLevels with object entries as plain mappings."""
        return {k: (v.as_dict() if isinstance(v, WarningLevel) else v) for k, v in self.warning_levels.items()}

    def known_issues_data(self) -> List[Dict[str, str]]:
        return [k.model_dump() for k in self.known_issues]

    def load_plugins(self) -> List[Any]:
        """Import configured plugins. Requires allowPlugins."""
        if not self.plugins:
            return []
        if not self.allow_plugins:
            logger.warning("Ignoring %d plugin(s): set allowPlugins to load executable extensions", len(self.plugins))
            return []
        loaded = []
        for ref in self.plugins:
            try:
                loaded.append(load_object(ref))
            except (ImportError, AttributeError, ValueError) as e:
                raise ConfigError(f"Could not load plugin {ref!r}", errors=[str(e)]) from e
        return loaded


def find_config_file(directory: Union[str, Path]) -> Optional[Path]:
    """First default-named config file in ``directory``."""
    base = Path(directory)
    for name in CONFIG_FILE_NAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    p = Path(path)
    if p.suffix != ".json":
        raise ConfigError(
            f"Unsupported config format: {p.name}",
            errors=["Only JSON configuration is loaded; use 'plugins' with allowPlugins for executable extensions"],
        )
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {p}") from None
    except OSError as e:
        raise ConfigError(f"Could not read config file {p}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {p}", errors=[f"line {e.lineno} column {e.colno}: {e.msg}"]) from e
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {p} must be a JSON object")
    return data


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    data: Dict[str, Any] = {}
    for suffix, key in ENV_KEYS.items():
        value = env.get(ENV_PREFIX + suffix)
        if value is not None and value.strip() != "":
            data[key] = value.strip()
    return data


def _normalize_lists(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Alias (camelCase) keys, with single-string pattern lists wrapped."""
    out = dict(data)
    for name, field in CheckerConfig.model_fields.items():
        if field.alias and name in out and name != field.alias:
            out[field.alias] = out.pop(name)
    for key in _LIST_KEYS:
        if isinstance(out.get(key), str):
            out[key] = [out[key]]
    return out


def _conflict_warnings(user: Mapping[str, Any], config: CheckerConfig) -> List[str]:
    warnings = []
    for key in sorted(config.model_extra or {}):
        warnings.append(f"Unknown configuration key: {key}")
    if config.timeout < MIN_TIMEOUT:
        warnings.append(f"timeout is very low ({config.timeout:g}s), tests may fail prematurely")
    elif config.timeout > MAX_REASONABLE_TIMEOUT:
        warnings.append(f"timeout is {config.timeout:g}s; timeout is given in seconds, not milliseconds")
    if user.get("profile") == "production" and user.get("failOnWarning") is False:
        warnings.append("production profile sets failOnWarning to true, but config explicitly sets it to false")
    if user.get("profile") == "development" and user.get("failOnError") is True:
        warnings.append("development profile sets failOnError to false, but config explicitly sets it to true")
    if config.exclude and config.include:
        warnings.append("Both exclude and include patterns are specified; files must pass both")
    if config.parallel and config.watch:
        warnings.append("Parallel execution with watch mode may cause unexpected behavior")
    if config.plugins and not config.allow_plugins:
        warnings.append("plugins are listed but allowPlugins is false; they will not be loaded")
    return warnings


def _format_validation_error(e: ValidationError) -> List[str]:
    errors = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        errors.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return errors


def build_config(data: Mapping[str, Any]) -> CheckerConfig:
    """Apply the profile named in ``data`` and validate. Raises ConfigError."""
    user = _normalize_lists(data)
    merged = user
    profile = user.get("profile")
    if profile is not None:
        if not isinstance(profile, str):
            raise ConfigError("Invalid configuration", errors=["profile: must be a string"])
        try:
            merged = merge_layers(get_profile(profile, user.get("profiles")), user)
        except ProfileNotFound as e:
            valid = ", ".join(profile_names(user.get("profiles")))
            raise ConfigError(
                "Invalid configuration",
                errors=[f"profile: unknown profile {e.args[0]!r} (valid: {valid})"],
            ) from None
    try:
        config = CheckerConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError("Invalid configuration", errors=_format_validation_error(e)) from None

    config.warnings = _conflict_warnings(user, config)
    for w in config.warnings:
        logger.warning("Config: %s", w)
    return config


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> CheckerConfig:
    """
    Load, merge, and validate configuration.

    Args:
        path: Explicit JSON config file. When None, default names are searched
            in the extension path (from overrides or environment) or the cwd.
        overrides: Highest-precedence settings, e.g. from a CLI or request body
        environ: Environment mapping; defaults to os.environ

    Raises:
        ConfigError: The file is missing or malformed, or validation failed
    """
    overrides = _normalize_lists(overrides or {})
    env_data = env_overrides(environ)

    if path is None:
        search_dir = overrides.get("extensionPath") or env_data.get("extensionPath") or "."
        path = find_config_file(search_dir)
    file_data: Dict[str, Any] = {}
    if path is not None:
        file_data = read_config_file(path)
        logger.debug("Loaded config file %s", path)

    layered = merge_layers(merge_layers(_normalize_lists(file_data), env_data), overrides)
    return build_config(layered)
