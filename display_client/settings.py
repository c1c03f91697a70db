import os

DEFAULT_NEWS_API_URL = "http://localhost:3000/api/v1/news"


def env_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return float(val)


def get_settings() -> dict:
    """
    Client endpoints and timing, read from the environment on each call.
    """
    return {
        "NEWS_API_URL": os.getenv("NEWS_API_URL", DEFAULT_NEWS_API_URL),
        "WORKFLOW_WEBHOOK_URL": os.getenv("WORKFLOW_WEBHOOK_URL", ""),
        "STATIC_TIMEOUT": _env_float("NEWS_STATIC_TIMEOUT", 30.0),
        # The workflow runs several external services; tens of seconds is normal
        "DYNAMIC_TIMEOUT": _env_float("NEWS_DYNAMIC_TIMEOUT", 180.0),
        "LOADING_INTERVAL": _env_float("LOADING_INTERVAL", 2.5),
        "AUTO_FETCH_ON_MOUNT": env_bool("AUTO_FETCH_ON_MOUNT", True),
    }
