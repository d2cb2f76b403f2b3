import pytest
from botocore.exceptions import ClientError

from posterai.config import get_settings
from posterai.schemas.poster import PosterFormData
from posterai.services import r2_client
from posterai.services.job_store import MemoryJobStore
from posterai.services.poster import run_poster_job
from posterai.services.storage_bridge import publish_image, store_image_and_url

from conftest import FakeImageClient


class DummyS3:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.objects = {}

    def put_object(self, Bucket, Key, Body, ContentType):
        if self.fail:
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        self.objects[Key] = (Bucket, Body, ContentType)

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn, HttpMethod):
        return f"https://signed.example.com/{Params['Key']}?expires={ExpiresIn}"


@pytest.fixture
def r2_env(monkeypatch):
    monkeypatch.setenv("R2_ENDPOINT", "https://account.r2.cloudflarestorage.com")
    monkeypatch.setenv("R2_ACCESS_KEY_ID", "key")
    monkeypatch.setenv("R2_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("R2_BUCKET", "posters")
    get_settings.cache_clear()
    s3 = DummyS3()
    monkeypatch.setattr(r2_client, "_client", lambda: s3)
    return s3


def test_publish_without_storage_returns_data_url() -> None:
    assert publish_image(b"abc", "image/png", "job-1") == "data:image/png;base64,YWJj"


def test_make_key_sanitises_filename() -> None:
    key = r2_client.make_key("/posters/", "my poster?.png")
    folder, date_part, name = key.split("/")
    assert folder == "posters"
    assert len(date_part) == 8
    assert name == "my_poster_.png"


def test_publish_uploads_and_presigns(r2_env) -> None:
    url = publish_image(b"png-bytes", "image/png", "job-7")

    (key, (bucket, body, content_type)), = r2_env.objects.items()
    assert key.startswith("posters/") and key.endswith("/job-7.png")
    assert bucket == "posters"
    assert body == b"png-bytes"
    assert content_type == "image/png"
    assert url == f"https://signed.example.com/{key}?expires=3600"


def test_public_base_wins_over_presigning(r2_env, monkeypatch) -> None:
    monkeypatch.setenv("R2_PUBLIC_BASE", "https://cdn.example.com/")
    get_settings.cache_clear()

    stored = store_image_and_url(b"jpg", ext=".jpg", key="posters/20240101/a.jpg")

    assert stored == {
        "key": "posters/20240101/a.jpg",
        "url": "https://cdn.example.com/posters/20240101/a.jpg",
        "content_type": "image/jpeg",
    }


def test_failed_upload_raises(r2_env) -> None:
    r2_env.fail = True
    with pytest.raises(RuntimeError):
        store_image_and_url(b"png")


def test_publish_keeps_image_inline_when_upload_fails(r2_env) -> None:
    r2_env.fail = True
    assert publish_image(b"abc", "image/png", "job-2") == "data:image/png;base64,YWJj"


def test_poster_job_completes_when_upload_fails(r2_env) -> None:
    r2_env.fail = True
    store = MemoryJobStore()
    store.create("j1", "user@example.com")
    form = PosterFormData.model_validate(
        {
            "purpose": "info",
            "outputSize": "a4",
            "taste": "minimal",
            "layout": "center",
            "mainColor": "#000000",
            "mainTitle": "Library Week",
        }
    )

    run_poster_job("j1", form, store, FakeImageClient(), publish_image)

    job = store.get("j1")
    assert job.status == "completed"
    assert job.progress == 100
    assert job.image_url.startswith("data:image/png;base64,")
    assert r2_env.objects == {}
