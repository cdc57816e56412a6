"""Health check route."""

from deps import APIRouter, Query

from ..ai_status import get_ai_status

router = APIRouter()


@router.get("/health")
def health(verify_ai: bool = Query(default=False, description="Verify the AI key with a live request")) -> dict:
    """Liveness check plus AI availability."""
    return {"status": "ok", "ai": get_ai_status(verify_api=verify_ai)}
