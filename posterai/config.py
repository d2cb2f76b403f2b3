from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List
from urllib.parse import urlparse

UNLIMITED_DAILY_LIMIT = 9999


def _as_bool(value: str | None, default: bool) -> bool:
    """Interpret common truthy / falsy strings while providing a default."""

    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(value: str | None, default: int, *, minimum: int | None = None) -> int:
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except (TypeError, ValueError):
        return default
    if minimum is not None and parsed < minimum:
        return minimum
    return parsed


def _as_list(csv: str | None, fallback: List[str]) -> List[str]:
    """Split a CSV string to list with trimming and fallback."""
    if not csv:
        return fallback
    items = [x.strip() for x in csv.split(",") if x.strip()]
    return items or fallback


def _parse_allowed_origins(raw: str | None) -> List[str]:
    """Normalise comma-separated origins into values accepted by CORSMiddleware."""

    if not raw:
        return ["*"]

    cleaned: List[str] = []
    for origin in raw.split(","):
        value = origin.strip()
        if not value:
            continue
        if value == "*":
            return ["*"]

        if "://" not in value:
            value = "http://" + value
        parsed = urlparse(value)
        if not (parsed.scheme and parsed.netloc):
            continue
        normalised = f"{parsed.scheme}://{parsed.netloc}"

        if normalised not in cleaned:
            cleaned.append(normalised)

    return cleaned or ["*"]


@dataclass
class GeminiConfig:
    api_key: str | None = None
    image_model: str = "gemini-3-pro-image-preview"
    dev_image_model: str = "gemini-2.5-flash-image"
    vision_model: str = "gemini-2.5-flash"
    blueprint_model: str = "gemini-1.5-flash"
    use_vertex: bool = False
    project_id: str | None = None
    location: str = "us-central1"

    @property
    def is_configured(self) -> bool:
        if self.use_vertex:
            return bool(self.project_id)
        return bool(self.api_key)


@dataclass
class AuthConfig:
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 60 * 24
    bridge_secret: str | None = None
    admin_emails: List[str] = field(default_factory=list)


@dataclass
class QuotaConfig:
    default_daily_limit: int = 100
    analysis_daily_limit: int = 100
    admin_per_minute: int = 100
    api_per_minute: int = 100
    limiter_capacity: int = 500
    timezone: str | None = None


@dataclass
class JobConfig:
    backend: str = "sqlite"
    retention_seconds: int = 3600
    cleanup_interval_seconds: int = 3600


@dataclass
class GuardConfig:
    max_body_bytes: int
    max_image_bytes: int
    analysis_mime_types: List[str]

    @classmethod
    def from_env(cls) -> "GuardConfig":
        return cls(
            max_body_bytes=_as_int(os.getenv("MAX_BODY_BYTES"), 50 * 1024 * 1024, minimum=0),
            max_image_bytes=_as_int(os.getenv("MAX_IMAGE_BYTES"), 10 * 1024 * 1024, minimum=0),
            analysis_mime_types=_as_list(
                os.getenv("ANALYSIS_MIME_TYPES"),
                ["image/jpeg", "image/png", "image/webp", "image/gif"],
            ),
        )


@dataclass
class StorageConfig:
    endpoint: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    region: str = "auto"
    bucket: str | None = None
    public_base: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint and self.access_key and self.secret_key and self.bucket)


@dataclass
class Settings:
    environment: str
    allowed_origins: List[str]
    log_level: str
    database_path: str
    gemini: GeminiConfig
    auth: AuthConfig
    quota: QuotaConfig
    jobs: JobConfig
    guard: GuardConfig
    storage: StorageConfig

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    def _get(name: str, default: str | None = None) -> str | None:
        v = os.getenv(name)
        return v if v is not None else default

    environment = _get("ENVIRONMENT", "development") or "development"

    gemini = GeminiConfig(
        api_key=_get("GEMINI_API_KEY") or _get("GOOGLE_API_KEY"),
        image_model=_get("GEMINI_IMAGE_MODEL") or "gemini-3-pro-image-preview",
        dev_image_model=_get("GEMINI_DEV_IMAGE_MODEL") or "gemini-2.5-flash-image",
        vision_model=_get("GEMINI_VISION_MODEL") or "gemini-2.5-flash",
        blueprint_model=_get("GEMINI_BLUEPRINT_MODEL") or "gemini-1.5-flash",
        use_vertex=_as_bool(_get("GEMINI_USE_VERTEX"), False),
        project_id=_get("GCP_PROJECT_ID"),
        location=_get("GCP_LOCATION") or "us-central1",
    )

    auth = AuthConfig(
        jwt_secret=_get("JWT_SECRET") or _get("AUTH_SECRET") or "change-me",
        jwt_algorithm=_get("JWT_ALGORITHM") or "HS256",
        access_token_ttl_minutes=_as_int(_get("ACCESS_TOKEN_TTL_MINUTES"), 60 * 24, minimum=1),
        bridge_secret=_get("AUTH_BRIDGE_SECRET"),
        admin_emails=[e.lower() for e in _as_list(_get("ADMIN_EMAILS"), [])],
    )

    quota = QuotaConfig(
        default_daily_limit=_as_int(_get("DEFAULT_DAILY_LIMIT"), 100, minimum=1),
        analysis_daily_limit=_as_int(_get("ANALYSIS_DAILY_LIMIT"), 100, minimum=1),
        admin_per_minute=_as_int(_get("ADMIN_RATE_PER_MINUTE"), 100, minimum=1),
        api_per_minute=_as_int(_get("API_RATE_PER_MINUTE"), 100, minimum=1),
        limiter_capacity=_as_int(_get("RATE_LIMIT_CAPACITY"), 500, minimum=1),
        timezone=_get("RATE_LIMIT_TIMEZONE") or None,
    )

    jobs = JobConfig(
        backend=(_get("JOB_STORE_BACKEND") or "sqlite").strip().lower(),
        retention_seconds=_as_int(_get("JOB_RETENTION_SECONDS"), 3600, minimum=60),
        cleanup_interval_seconds=_as_int(_get("JOB_CLEANUP_INTERVAL"), 3600, minimum=0),
    )

    storage = StorageConfig(
        endpoint=_get("R2_ENDPOINT") or _get("S3_ENDPOINT"),
        access_key=_get("R2_ACCESS_KEY_ID") or _get("S3_ACCESS_KEY"),
        secret_key=_get("R2_SECRET_ACCESS_KEY") or _get("S3_SECRET_KEY"),
        region=_get("R2_REGION") or _get("S3_REGION") or "auto",
        bucket=_get("R2_BUCKET") or _get("S3_BUCKET"),
        public_base=_get("R2_PUBLIC_BASE") or _get("S3_PUBLIC_BASE"),
    )

    return Settings(
        environment=environment,
        allowed_origins=_parse_allowed_origins(_get("ALLOWED_ORIGINS", "*")),
        log_level=(_get("LOG_LEVEL") or "INFO").upper(),
        database_path=_get("DATABASE_PATH") or "posterai.db",
        gemini=gemini,
        auth=auth,
        quota=quota,
        jobs=jobs,
        guard=GuardConfig.from_env(),
        storage=storage,
    )
