"""
Runtime configuration read from the process environment
"""
import os


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
OPENAI_TIMEOUT_SECONDS = _float_env("OPENAI_TIMEOUT_SECONDS", 30.0)

RATE_LIMIT_WINDOW_SECONDS = _float_env("RATE_LIMIT_WINDOW_SECONDS", 60.0)
RATE_LIMIT_MAX_REQUESTS = _int_env("RATE_LIMIT_MAX_REQUESTS", 5)
# 0 disables expiry: a payload is suppressed for the lifetime of the process
DUPLICATE_WINDOW_SECONDS = _float_env("DUPLICATE_WINDOW_SECONDS", 60.0)
SWEEP_THRESHOLD = _int_env("SWEEP_THRESHOLD", 10000)

FLASHCARD_COUNT = _int_env("FLASHCARD_COUNT", 10)
MAX_INPUT_CHARS = _int_env("MAX_INPUT_CHARS", 20000)

# slowapi limit string for the saved-set endpoints
GENERAL_API_LIMIT = os.getenv("GENERAL_API_LIMIT", "60/minute")

# Prefer DATABASE_URL (e.g., Postgres). Fallback to local SQLite.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./flashgen.db")


def require_openai_api_key() -> str:
    """Return the provider key or fail; called at startup."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError("The OPENAI_API_KEY environment variable is missing")
    return api_key
