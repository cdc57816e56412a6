"""Suggest route (rules + AI fix suggestions)."""

from deps import APIRouter

from ..schemas import ScanRequest, SuggestResponse
from ..services import AIService, CheckerService
from ..utils import checker_errors, require_absolute

router = APIRouter()
checker_svc = CheckerService()
ai_svc = AIService()


@router.post("/suggest", response_model=SuggestResponse)
def suggest(req: ScanRequest) -> SuggestResponse:
    """Scan, then ask the model for fixes. ai_fix_suggestions is null without an API key."""
    require_absolute(req.extension_path)
    with checker_errors():
        issues = checker_svc.issues(req)
    manifest = checker_svc.read_manifest(req.extension_path)
    return SuggestResponse(issues=issues, ai_fix_suggestions=ai_svc.suggest_fixes(issues, manifest=manifest))
