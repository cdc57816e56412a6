"""Route handlers."""

from .cache import router as cache_router
from .health import router as health_router
from .run import router as run_router
from .scan import router as scan_router
from .suggest import router as suggest_router

__all__ = ["health_router", "scan_router", "run_router", "cache_router", "suggest_router"]
