"""Incremental cache routes."""

from deps import APIRouter, Query

from ..schemas import CacheStatsResponse
from ..services import CheckerService
from ..utils import checker_errors, require_absolute

router = APIRouter()
checker_svc = CheckerService()


@router.get("/cache/stats", response_model=CacheStatsResponse)
def cache_stats(extension_path: str = Query(..., alias="extensionPath")) -> CacheStatsResponse:
    require_absolute(extension_path)
    with checker_errors():
        return CacheStatsResponse(stats=checker_svc.cache_stats(extension_path))


@router.delete("/cache")
def clear_cache(extension_path: str = Query(..., alias="extensionPath")) -> dict:
    """Delete the incremental cache so the next incremental run is full."""
    require_absolute(extension_path)
    with checker_errors():
        checker_svc.clear_cache(extension_path)
    return {"cleared": True}
