"""Cloudflare R2 (S3 compatible) helpers for persisting finished posters."""
from __future__ import annotations

import datetime as _dt
import logging
import re
from functools import lru_cache
from typing import Optional

import boto3
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from posterai.config import get_settings

logger = logging.getLogger(__name__)


def storage_enabled() -> bool:
    return get_settings().storage.is_configured


@lru_cache(maxsize=1)
def _client() -> BaseClient:
    storage = get_settings().storage
    if not storage.is_configured:
        raise RuntimeError("R2 storage is not configured")
    return boto3.session.Session().client(
        "s3",
        endpoint_url=storage.endpoint,
        aws_access_key_id=storage.access_key,
        aws_secret_access_key=storage.secret_key,
        region_name=storage.region,
    )


def make_key(folder: str, filename: str) -> str:
    folder = (folder or "posters").strip("/ ") or "posters"
    date_part = _dt.datetime.now(_dt.timezone.utc).strftime("%Y%m%d")
    safe_name = re.sub(r"[^0-9A-Za-z._-]", "_", filename or "poster.png")
    return f"{folder}/{date_part}/{safe_name}"


def public_url_for(key: str) -> str | None:
    base = get_settings().storage.public_base
    if not base:
        return None
    return f"{base.rstrip('/')}/{key.lstrip('/')}"


def presign_get_url(key: str, expires: int = 3600) -> str:
    bucket = get_settings().storage.bucket
    try:
        return _client().generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=max(int(expires), 60),
            HttpMethod="GET",
        )
    except (ClientError, BotoCoreError) as exc:
        raise RuntimeError("Failed to generate download URL") from exc


def put_bytes(key: str, data: bytes, *, content_type: str = "image/png") -> Optional[str]:
    """Upload *data* and return a URL for it, or ``None`` when the upload failed."""

    bucket = get_settings().storage.bucket
    try:
        _client().put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type)
    except (ClientError, BotoCoreError) as exc:
        logger.warning("R2 put failed: bucket=%s key=%s err=%s", bucket, key, exc)
        return None
    return public_url_for(key) or presign_get_url(key)
