"""Startup validation and configuration checks."""

from deps import Path, logging

from extension_checker.logging_config import setup_logging

from .config import get_log_file, get_log_level, get_together_api_key

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    setup_logging(level=get_log_level(), log_file=get_log_file() or None)


def validate_config() -> None:
    """Validate config at startup and warn if .env or TOGETHER_API_KEY missing."""
    if not Path(".env").exists():
        logger.warning("WARNING: .env file not found. AI fix suggestions will be disabled.")
        logger.warning("Create .env from .env.example and set TOGETHER_API_KEY for AI features.")
    elif not get_together_api_key():
        logger.warning("WARNING: TOGETHER_API_KEY not set in .env. AI fix suggestions will be disabled.")
