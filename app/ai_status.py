"""AI availability for /health and /suggest."""

from deps import Any, Dict, OpenAI, Optional, logging, time

from .config import get_together_api_key, get_together_model

logger = logging.getLogger(__name__)

TOGETHER_BASE_URL = "https://api.together.xyz/v1"
PING_TIMEOUT = 5.0
PING_TTL = 30.0  # seconds a ping result is reused
MIN_KEY_LENGTH = 10
PLACEHOLDER_PREFIX = "your_api_key"

# (key, checked_at, status) of the last live ping
_last_ping: Optional[tuple] = None


def reset_status_cache() -> None:
    global _last_ping
    _last_ping = None


def key_problem(key: str) -> Optional[str]:
    """Why ``key`` cannot be used, or None if it looks usable."""
    if not key:
        return "TOGETHER_API_KEY not set in .env"
    if key.startswith(PLACEHOLDER_PREFIX):
        return "TOGETHER_API_KEY still holds the .env.example placeholder"
    if len(key) < MIN_KEY_LENGTH:
        return "TOGETHER_API_KEY appears invalid (too short)"
    return None


def _ping_reason(error: Exception) -> str:
    message = str(error)
    if "401" in message or "Unauthorized" in message or "Invalid" in message:
        return "TOGETHER_API_KEY is invalid or expired"
    if "timeout" in message.lower():
        return "API request timed out (check network)"
    return f"API test failed: {message[:100]}"


def ping(key: str, model: str) -> Dict[str, Any]:
    """Send a one-token completion to verify ``key``; results are reused for PING_TTL seconds."""
    global _last_ping
    if _last_ping and _last_ping[0] == key and time.time() - _last_ping[1] < PING_TTL:
        return dict(_last_ping[2])

    result: Dict[str, Any] = {"available": True, "reason": "AI fix suggestions available"}
    try:
        OpenAI(api_key=key, base_url=TOGETHER_BASE_URL).chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": "ping"}],
            max_tokens=1,
            timeout=PING_TIMEOUT,
        )
    except Exception as e:
        logger.warning("AI status ping failed: %s", str(e)[:200])
        result = {"available": False, "reason": _ping_reason(e)}

    _last_ping = (key, time.time(), result)
    return dict(result)


def get_ai_status(verify_api: bool = False) -> Dict[str, Any]:
    """Availability of AI fix suggestions.

    Only the local configuration is inspected unless ``verify_api`` is set.
    """
    key = get_together_api_key()
    status: Dict[str, Any] = {
        "available": False,
        "reason": "",
        "api_key_set": bool(key),
        "model": get_together_model(),
    }
    problem = key_problem(key)
    if problem:
        status["reason"] = problem
        return status
    if not verify_api:
        status.update(available=True, reason="API key configured (not verified)")
        return status
    status.update(ping(key, status["model"]))
    return status
