from posterai.config import get_settings
from posterai.services.errors import (
    ContentPolicyError,
    JobNotFound,
    UserStoreError,
    mask_email,
    mask_sensitive,
    sanitize_error,
    sanitize_input,
)


def test_error_classes_carry_status_and_code() -> None:
    assert ContentPolicyError("blocked").status_code == 400
    assert JobNotFound("abc").status_code == 404
    assert JobNotFound("abc").job_id == "abc"

    err = UserStoreError("duplicate", status_code=409)
    assert err.status_code == 409
    assert err.code == "USER_STORE"
    assert UserStoreError("plain").status_code == 400


def test_sanitize_error_hides_details_in_production(monkeypatch) -> None:
    boom = RuntimeError("db password=hunter2")

    body = sanitize_error(boom, "Something failed")
    assert body["message"] == "Something failed"
    assert body["details"] == "db password=hunter2"

    monkeypatch.setenv("ENVIRONMENT", "production")
    get_settings.cache_clear()
    body = sanitize_error(boom, "Something failed")
    assert body == {"message": "Something failed", "code": "INTERNAL_ERROR"}


def test_sanitize_input_escapes_markup() -> None:
    assert sanitize_input('<a href="/x">') == "&lt;a href=&quot;&#x2F;x&quot;&gt;"


def test_masking_helpers() -> None:
    assert mask_email("alice@example.com") == "al***@example.com"
    assert mask_email("") == ""
    assert mask_sensitive("abcdefgh") == "abcd****"
    assert mask_sensitive("abc") == "***"
