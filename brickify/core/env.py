# brickify/core/env.py
from __future__ import annotations

import os
from typing import List, Optional


def _csv(key: str, default: str = "") -> List[str]:
    raw = os.getenv(key, default).strip()
    if not raw:
        return []
    return [x.strip() for x in raw.split(",") if x.strip()]


def _float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def app_env() -> str:
    # local | preview | prod
    return os.getenv("APP_ENV", "local").strip().lower()


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def cors_allow_origins() -> List[str]:
    # 예: CORS_ALLOW_ORIGINS="http://localhost:3000,https://xxx.vercel.app"
    return _csv("CORS_ALLOW_ORIGINS")


def cors_allow_origin_regex() -> Optional[str]:
    # 예: CORS_ALLOW_ORIGIN_REGEX="^https://.*\.vercel\.app$"
    raw = os.getenv("CORS_ALLOW_ORIGIN_REGEX", "").strip()
    return raw or None


def image_timeout_seconds() -> float:
    return max(1.0, _float("BOM_IMAGE_TIMEOUT_SECONDS", 30.0))


def image_host_regex() -> Optional[str]:
    # 예: BOM_IMAGE_HOST_REGEX="^[a-z0-9-]+\.supabase\.co$"
    # 비어 있으면 호스트 제한 없음
    raw = os.getenv("BOM_IMAGE_HOST_REGEX", "").strip()
    return raw or None


def image_max_bytes() -> int:
    # 업로드/다운로드 이미지 최대 크기 (기본 10MB)
    return max(1, _int("BOM_IMAGE_MAX_BYTES", 10 * 1024 * 1024))


def image_max_pixels() -> int:
    # 디코딩 전에 헤더 크기로 거른다 (기본 4천만 픽셀)
    return max(1, _int("BOM_IMAGE_MAX_PIXELS", 40_000_000))


def mask_min_coverage() -> float:
    return _float("BOM_MASK_MIN_COVERAGE", 0.02)


def mask_max_coverage() -> float:
    return _float("BOM_MASK_MAX_COVERAGE", 0.92)


def mask_circle_radius() -> float:
    # 64 기준 반지름 비율 (0.42 -> 약 27셀)
    return _float("BOM_MASK_CIRCLE_RADIUS", 0.42)


def bom_store_ttl_seconds() -> int:
    return _int("BOM_STORE_TTL_SECONDS", 60 * 30)
