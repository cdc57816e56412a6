"""FastAPI app: /health, /scan, /run, /cache, /suggest."""

from deps import CORSMiddleware, FastAPI

from .routes import cache_router, health_router, run_router, scan_router, suggest_router
from .startup import configure_logging, validate_config

app = FastAPI(
    title="Browser Extension Checker API",
    description="Rule-based static analysis and test suites for browser extensions, plus Together.ai fix suggestions.",
    version="0.1.0",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup() -> None:
    configure_logging()
    validate_config()


app.include_router(health_router)
app.include_router(scan_router)
app.include_router(run_router)
app.include_router(cache_router)
app.include_router(suggest_router)
