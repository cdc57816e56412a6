"""Scan route (rules-only analysis)."""

from deps import APIRouter

from ..schemas import ErrorDetail, ScanRequest, ScanResponse
from ..services import CheckerService
from ..utils import checker_errors, require_absolute

router = APIRouter()
checker_svc = CheckerService()


@router.post(
    "/scan",
    response_model=ScanResponse,
    responses={400: {"model": ErrorDetail}, 404: {"model": ErrorDetail}},
)
def scan(req: ScanRequest) -> ScanResponse:
    """Detect issues across the extension tree. No suites, no AI."""
    require_absolute(req.extension_path)
    with checker_errors():
        return checker_svc.scan(req)
