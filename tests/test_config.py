from posterai.config import _as_int, _parse_allowed_origins, get_settings


def test_parse_allowed_origins_with_paths() -> None:
    raw = "https://example.com/app, https://demo.com/sub"
    assert _parse_allowed_origins(raw) == [
        "https://example.com",
        "https://demo.com",
    ]


def test_parse_allowed_origins_with_wildcard() -> None:
    assert _parse_allowed_origins("https://example.com,*") == ["*"]


def test_parse_allowed_origins_adds_scheme_and_deduplicates() -> None:
    raw = " localhost:3000 , http://localhost:3000/ ,"
    assert _parse_allowed_origins(raw) == ["http://localhost:3000"]


def test_parse_allowed_origins_defaults_to_wildcard() -> None:
    assert _parse_allowed_origins("") == ["*"]


def test_as_int_falls_back_and_clamps() -> None:
    assert _as_int(None, 7) == 7
    assert _as_int("abc", 7) == 7
    assert _as_int("-3", 7, minimum=1) == 1
    assert _as_int(" 42 ", 7) == 42


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("GOOGLE_API_KEY", "key-123")
    monkeypatch.setenv("DEFAULT_DAILY_LIMIT", "25")
    monkeypatch.setenv("ADMIN_EMAILS", "Boss@Example.com, ops@example.com")
    monkeypatch.setenv("JOB_STORE_BACKEND", "Memory")
    monkeypatch.setenv("ENVIRONMENT", "production")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.gemini.api_key == "key-123"
    assert settings.gemini.is_configured
    assert settings.quota.default_daily_limit == 25
    assert settings.auth.admin_emails == ["boss@example.com", "ops@example.com"]
    assert settings.jobs.backend == "memory"
    assert settings.is_production


def test_vertex_requires_project(monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_USE_VERTEX", "true")
    monkeypatch.delenv("GCP_PROJECT_ID", raising=False)
    get_settings.cache_clear()
    assert not get_settings().gemini.is_configured

    monkeypatch.setenv("GCP_PROJECT_ID", "poster-project")
    get_settings.cache_clear()
    assert get_settings().gemini.is_configured
