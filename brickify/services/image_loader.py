# brickify/services/image_loader.py
"""프리뷰 이미지 바이트 가져오기 (data URL / http(s) URL)"""
from __future__ import annotations

import base64
import binascii
import ipaddress
import logging
import re
from typing import Optional
from urllib.parse import unquote_to_bytes, urlparse

import httpx

from brickify.core.env import image_host_regex, image_max_bytes, image_timeout_seconds
from brickify.core.errors import ImageLoadError

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5


def _decode_data_url(source: str) -> bytes:
    # data:[<mediatype>][;base64],<data>
    header, sep, payload = source.partition(",")
    if not sep:
        raise ImageLoadError("malformed data URL")

    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise ImageLoadError(f"invalid base64 data URL: {e}") from e

    return unquote_to_bytes(payload)


def _check_url(url: str) -> str:
    """
    리다이렉트 hop마다 다시 검사한다.
    - http(s)만 허용, 호스트 allowlist가 있으면 https만
    - 사설/루프백/링크로컬 IP 리터럴과 localhost는 항상 차단
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ImageLoadError(f"unsupported image source scheme: {parsed.scheme or '(none)'}")

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        raise ImageLoadError("image URL has no host")

    if hostname == "localhost" or hostname.endswith(".localhost"):
        raise ImageLoadError(f"image host is not allowed: {hostname}")

    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        ip = None
    if ip is not None and not ip.is_global:
        raise ImageLoadError(f"image host is not allowed: {hostname}")

    pattern = image_host_regex()
    if pattern:
        if parsed.scheme != "https":
            raise ImageLoadError("only https is allowed for image URLs")
        if not re.match(pattern, hostname, flags=re.IGNORECASE):
            raise ImageLoadError(f"image host is not allowed: {hostname}")

    return hostname


async def _read_capped(resp: httpx.Response, limit: int) -> bytes:
    chunks = []
    size = 0
    async for chunk in resp.aiter_bytes():
        size += len(chunk)
        if size > limit:
            raise ImageLoadError(f"image response exceeds {limit} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def load_image_bytes(
    source: str,
    *,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bytes:
    """
    source -> 이미지 바이트.
    실패하면 ImageLoadError (재시도 없음, 빈 응답도 실패).
    리다이렉트는 직접 따라가면서 hop마다 _check_url을 다시 적용한다.
    """
    if not source or not isinstance(source, str):
        raise ImageLoadError("image source is empty")

    if source.startswith("data:"):
        data = _decode_data_url(source)
        if not data:
            raise ImageLoadError("data URL is empty")
        return data

    url = source
    hostname = _check_url(url)

    t = timeout if timeout is not None else image_timeout_seconds()
    limit = image_max_bytes()
    try:
        async with httpx.AsyncClient(timeout=t, transport=transport, follow_redirects=False) as client:
            for _ in range(MAX_REDIRECTS + 1):
                async with client.stream("GET", url) as resp:
                    if resp.is_redirect:
                        location = resp.headers.get("location")
                        if not location:
                            raise ImageLoadError(f"redirect without location: status={resp.status_code}")
                        url = str(resp.url.join(location))
                        hostname = _check_url(url)
                        continue

                    if resp.status_code >= 400:
                        raise ImageLoadError(f"image fetch failed: status={resp.status_code}")

                    data = await _read_capped(resp, limit)
                    break
            else:
                raise ImageLoadError(f"too many redirects (>{MAX_REDIRECTS})")
    except httpx.HTTPError as e:
        raise ImageLoadError(f"image fetch failed: {e}") from e

    if not data:
        raise ImageLoadError("image response is empty")

    logger.info("[IMAGE] fetched host=%s bytes=%d", hostname, len(data))
    return data
