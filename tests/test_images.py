import base64

import pytest
import requests

from posterai.services import images
from posterai.services.errors import InvalidImageError
from posterai.services.images import decode_image_ref, parse_data_url, to_data_url
from posterai.services.upscale import clamp_scale, upscale_image

from conftest import make_png, make_png_data_url


def test_parse_data_url() -> None:
    mime, payload = parse_data_url("data:image/PNG;base64,AAAA")
    assert mime == "image/png"
    assert payload == "AAAA"

    with pytest.raises(InvalidImageError):
        parse_data_url("image/png;base64,AAAA")


def test_decode_and_encode_data_url() -> None:
    raw = make_png()
    ref = decode_image_ref(to_data_url(raw, "image/png"))
    assert ref.data == raw
    assert ref.mime_type == "image/png"


def test_decode_rejects_empty_values() -> None:
    with pytest.raises(InvalidImageError):
        decode_image_ref("")
    with pytest.raises(InvalidImageError):
        decode_image_ref("data:image/png;base64,")


def test_decode_fetches_http_urls(monkeypatch) -> None:
    class DummyResponse:
        content = b"remote-bytes"
        headers = {"content-type": "image/jpeg; charset=binary"}

        def raise_for_status(self):
            return None

    calls = {}

    def fake_get(url, timeout):
        calls["url"] = url
        calls["timeout"] = timeout
        return DummyResponse()

    monkeypatch.setattr(images.requests, "get", fake_get)
    ref = decode_image_ref("https://cdn.example.com/poster.jpg")

    assert ref.data == b"remote-bytes"
    assert ref.mime_type == "image/jpeg"
    assert calls == {"url": "https://cdn.example.com/poster.jpg", "timeout": 30}


def test_decode_http_failure(monkeypatch) -> None:
    def fake_get(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(images.requests, "get", fake_get)
    with pytest.raises(InvalidImageError):
        decode_image_ref("http://cdn.example.com/missing.png")


@pytest.mark.parametrize("value, expected", [(None, 2.0), (1.0, 1.5), (2.5, 2.5), (8, 3.0)])
def test_clamp_scale(value, expected) -> None:
    assert clamp_scale(value) == expected


def test_upscale_image_returns_png() -> None:
    result = upscale_image(make_png_data_url((10, 8)), 2)

    assert result.original_size == (10, 8)
    assert result.upscaled_size == (20, 16)
    assert result.scale == 2.0
    assert result.data_url.startswith("data:image/png;base64,")
    assert images.image_size(base64.b64decode(result.data_url.split(",", 1)[1])) == (20, 16)


def test_upscale_rejects_non_images() -> None:
    with pytest.raises(InvalidImageError):
        upscale_image(to_data_url(b"not an image", "image/png"))
