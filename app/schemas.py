"""Pydantic request/response models."""

from deps import Any, BaseModel, Dict, Field, List, Optional


# --- Request ---


class ScanRequest(BaseModel):
    """Request body for scanning an extension directory on the server."""

    extension_path: str = Field(..., alias="extensionPath", description="Absolute path to the extension root")
    config_path: Optional[str] = Field(default=None, alias="configPath", description="Explicit JSON config file")
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Configuration overrides (same keys as the config file, e.g. profile, strictMode)",
    )

    model_config = {"populate_by_name": True}


class RunRequest(ScanRequest):
    """Request body for running test suites."""

    incremental: bool = Field(default=False, description="Only run suites affected by changed files")
    force_full: bool = Field(default=False, alias="forceFull")
    use_git: bool = Field(default=False, alias="useGit", description="Detect changes with git diff")
    suites: Optional[List[str]] = Field(default=None, description="Built-in suite keys to run; default all")


# --- Issue (response) ---


class IssueOut(BaseModel):
    """Single detected issue."""

    type: str = Field(..., description="Rule identifier, e.g. unsafe-innerHTML")
    file: str = Field(..., description="File path relative to the extension root")
    line: int
    column: Optional[int] = None
    severity: str = Field(..., description="ERROR, WARNING, or INFO")
    message: str
    context: str = ""
    suggestion: Optional[str] = None
    reason: Optional[str] = Field(default=None, description="Why the severity was adjusted")


# --- Responses ---


class ScanResponse(BaseModel):
    """Response for POST /scan."""

    issues: List[IssueOut] = Field(default_factory=list)
    statistics: Dict[str, Any] = Field(default_factory=dict)
    summary: str = ""
    warnings: List[str] = Field(default_factory=list)
    exit_code: int = 0


class RunResponse(BaseModel):
    """Response for POST /run."""

    result: Dict[str, Any] = Field(..., description="Full run result: suites, summary, warnings")
    exit_code: int = 0


class SuggestResponse(BaseModel):
    """Response for POST /suggest (rules + AI)."""

    issues: List[IssueOut] = Field(default_factory=list)
    ai_fix_suggestions: Optional[str] = Field(default=None, description="AI-generated fix suggestions")


class CacheStatsResponse(BaseModel):
    """Response for GET /cache/stats."""

    stats: Dict[str, Any] = Field(default_factory=dict)


class ErrorDetail(BaseModel):
    """Error response detail."""

    detail: Any = Field(..., description="Error message or structured error")
