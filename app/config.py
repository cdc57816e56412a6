"""Configuration from environment."""

from deps import load_dotenv, os

load_dotenv()


def get_together_api_key() -> str:
    """Together.ai API key (required for AI features)."""
    return os.environ.get("TOGETHER_API_KEY", "").strip()


def get_together_model() -> str:
    """Together.ai model. Default: deepseek-ai/DeepSeek-V3.1."""
    return os.environ.get("TOGETHER_MODEL", "deepseek-ai/DeepSeek-V3.1").strip()


def get_config_path() -> str:
    """Default checker config file for requests that do not name one; empty searches the extension."""
    return os.environ.get("EXTCHECK_CONFIG", "").strip()


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def get_log_file() -> str:
    """Optional log file path; empty disables file logging."""
    return os.environ.get("LOG_FILE", "").strip()
