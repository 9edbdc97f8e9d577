"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend, make `backend.*` importable from
a plain checkout, and keep tests independent of the developer's environment
(storage root, public URL, database DSN).
"""
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

_ENV_VARS = (
    "FILE_STORAGE_PATH",
    "PUBLIC_URL",
    "TOKEN_IMAGE_MAX_UPLOAD_BYTES",
    "TOKEN_IMAGE_UPLOAD_REGISTER_TTL_SECONDS",
    "TOKEN_IMAGES_DATABASE_URL",
    "DATABASE_URL",
    "TOKENVAULT_ENV",
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Clear configuration env vars and point storage at a per-test directory."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("FILE_STORAGE_PATH", str(tmp_path / "files"))
    yield


@pytest.fixture(autouse=True)
def _reset_token_image_service():
    """Drop the lazily built route service so each test wires its own."""
    from backend.web.routes import token_images as routes

    routes.set_service(None)
    yield
    routes.set_service(None)
