"""Shared test configuration and fixtures."""

import io
import os
import tempfile
from pathlib import Path

# Configure before importing the app: the rate limit is read when the routes
# module loads and the app creates its data directory on import.
os.environ.setdefault("LABELCANVAS_UPLOAD_RATE_LIMIT", "10000/minute")
os.environ.setdefault(
    "LABELCANVAS_DATA_DIR", tempfile.mkdtemp(prefix="labelcanvas-")
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402

from labelcanvas.main import app  # noqa: E402


@pytest.fixture
def sample_image() -> bytes:
    """Create a 200x100 PNG image."""
    img = Image.new("RGB", (200, 100), color="red")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the reference store at an empty data directory."""
    monkeypatch.setenv("LABELCANVAS_DATA_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def store_client(data_dir: Path) -> TestClient:
    """Test client for the reference store; also usable as an httpx.Client."""
    return TestClient(app)
