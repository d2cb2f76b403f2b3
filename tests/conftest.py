import base64
from io import BytesIO
from typing import Any, Callable, Dict, List

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from posterai.config import get_settings
from posterai.main import app
from posterai.services.audit_log import get_audit_log
from posterai.services.auth import create_access_token
from posterai.services.database import get_database
from posterai.services.errors import PosterAIError
from posterai.services.image_provider import GeneratedImage, get_image_client
from posterai.services.job_store import get_job_store
from posterai.services.rate_limiter import admin_limiter, api_limiter, daily_limiter
from posterai.services.users import UserStore, get_user_store

ADMIN_EMAIL = "admin@example.com"
BRIDGE_SECRET = "bridge-secret"

_CLEARED_ENV = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "GEMINI_IMAGE_MODEL",
    "GEMINI_DEV_IMAGE_MODEL",
    "GEMINI_VISION_MODEL",
    "GEMINI_BLUEPRINT_MODEL",
    "GEMINI_USE_VERTEX",
    "R2_ENDPOINT",
    "S3_ENDPOINT",
    "DEFAULT_DAILY_LIMIT",
    "ANALYSIS_DAILY_LIMIT",
    "ADMIN_RATE_PER_MINUTE",
    "API_RATE_PER_MINUTE",
    "JOB_STORE_BACKEND",
)


def _clear_caches() -> None:
    get_settings.cache_clear()
    get_database.cache_clear()
    get_user_store.cache_clear()
    get_audit_log.cache_clear()
    get_job_store.cache_clear()
    daily_limiter.reset()
    admin_limiter.reset()
    api_limiter.reset()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    for name in _CLEARED_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "posterai.db"))
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("AUTH_BRIDGE_SECRET", BRIDGE_SECRET)
    monkeypatch.setenv("ADMIN_EMAILS", ADMIN_EMAIL)
    monkeypatch.setenv("ENVIRONMENT", "test")
    _clear_caches()
    yield
    app.dependency_overrides.clear()
    _clear_caches()


def make_png(size=(8, 6), color=(200, 30, 30)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_png_data_url(size=(8, 6)) -> str:
    return "data:image/png;base64," + base64.b64encode(make_png(size)).decode("ascii")


@pytest.fixture
def png_data_url() -> Callable[..., str]:
    return make_png_data_url


class FakeImageClient:
    """Records every call and answers with a canned image or text."""

    def __init__(self) -> None:
        self.image = GeneratedImage(data=make_png((4, 4)), mime_type="image/png")
        self.text = "{}"
        self.error: PosterAIError | None = None
        self.calls: List[Dict[str, Any]] = []

    def generate_image(self, parts, *, model):
        self.calls.append({"kind": "image", "parts": list(parts), "model": model})
        if self.error is not None:
            raise self.error
        return self.image

    def generate_text(self, parts, *, model, json_output=False):
        self.calls.append({"kind": "text", "parts": list(parts), "model": model, "json_output": json_output})
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def fake_client() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def client(fake_client) -> TestClient:
    app.dependency_overrides[get_image_client] = lambda: fake_client
    return TestClient(app)


@pytest.fixture
def users() -> UserStore:
    return get_user_store()


@pytest.fixture
def auth_header(users) -> Callable[[str], Dict[str, str]]:
    """Return bearer headers for *email*, adding it to the allow-list first."""

    def _make(email: str = "user@example.com") -> Dict[str, str]:
        if users.get_user_by_email(email) is None:
            users.add_user(email, "Test User")
        return {"Authorization": f"Bearer {create_access_token(email)}"}

    return _make


@pytest.fixture
def admin_header(users) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(ADMIN_EMAIL)}"}
