"""Environment-driven settings."""

import os
from pathlib import Path

DEFAULT_API_URL = "http://127.0.0.1:8000"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MIN_BOX_SIZE = 10.0
DEFAULT_UPLOAD_RATE_LIMIT = "1000/minute"


def _get_float(env_var: str, default: float) -> float:
    """Read a positive float from environment with safe fallback."""
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    return value


def get_api_url() -> str:
    """Base URL of the remote annotation store."""
    return os.getenv("LABELCANVAS_API_URL", DEFAULT_API_URL).rstrip("/")


def get_data_dir() -> Path:
    """Get the store data directory from environment or default."""
    env_path = os.environ.get("LABELCANVAS_DATA_DIR")
    if env_path:
        return Path(env_path)
    return Path.cwd() / "data"


def get_timeout() -> float:
    """Network timeout for store requests and image fetches."""
    return _get_float("LABELCANVAS_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)


def get_min_box_size() -> float:
    """Smallest width and height a drawn box may have."""
    return _get_float("LABELCANVAS_MIN_BOX_SIZE", DEFAULT_MIN_BOX_SIZE)


def get_upload_rate_limit() -> str:
    """Rate limit applied to image uploads on the reference store."""
    return os.environ.get("LABELCANVAS_UPLOAD_RATE_LIMIT", DEFAULT_UPLOAD_RATE_LIMIT)
