"""Run route (test suites)."""

from deps import APIRouter

from ..schemas import ErrorDetail, RunRequest, RunResponse
from ..services import CheckerService
from ..utils import checker_errors, require_absolute

router = APIRouter()
checker_svc = CheckerService()


@router.post(
    "/run",
    response_model=RunResponse,
    responses={400: {"model": ErrorDetail}, 404: {"model": ErrorDetail}, 500: {"model": ErrorDetail}},
)
async def run(req: RunRequest) -> RunResponse:
    """Run the built-in suites (optionally incremental) and return the full result."""
    require_absolute(req.extension_path)
    with checker_errors():
        return await checker_svc.run(req)
