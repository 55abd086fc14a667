import asyncio

import httpx
import pytest

from brickify.core.errors import ImageLoadError
from brickify.services.image_loader import load_image_bytes

from conftest import data_url, solid_png


def _load(source, **kwargs):
    return asyncio.run(load_image_bytes(source, **kwargs))


def _transport(status_code=200, content=b"", exc=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if exc is not None:
            raise exc
        return httpx.Response(status_code, content=content, headers={"content-type": "image/png"})

    return httpx.MockTransport(handler)


def test_data_url_base64():
    png = solid_png("#FFFFFF", size=(3, 3))
    assert _load(data_url(png)) == png


def test_data_url_percent_encoded():
    assert _load("data:text/plain,hello%20world") == b"hello world"


def test_empty_data_url_fails():
    with pytest.raises(ImageLoadError):
        _load("data:image/png;base64,")
    with pytest.raises(ImageLoadError):
        _load("data:image/png;base64")


def test_http_success():
    png = solid_png("#000000", size=(2, 2))
    assert _load("https://example.com/preview.png", transport=_transport(200, png)) == png


def test_http_error_status_fails():
    with pytest.raises(ImageLoadError, match="status=404"):
        _load("https://example.com/missing.png", transport=_transport(404, b"nope"))


def test_http_empty_body_fails():
    with pytest.raises(ImageLoadError, match="empty"):
        _load("https://example.com/empty.png", transport=_transport(200, b""))


def test_http_transport_error_fails():
    err = httpx.ConnectError("connection refused")
    with pytest.raises(ImageLoadError, match="fetch failed"):
        _load("https://example.com/down.png", transport=_transport(exc=err))


def test_unsupported_scheme_fails():
    with pytest.raises(ImageLoadError):
        _load("ftp://example.com/a.png")
    with pytest.raises(ImageLoadError):
        _load("")


def test_host_allowlist(monkeypatch):
    monkeypatch.setenv("BOM_IMAGE_HOST_REGEX", r"^[a-z0-9-]+\.supabase\.co$")
    png = solid_png("#000000", size=(2, 2))

    with pytest.raises(ImageLoadError, match="not allowed"):
        _load("https://evil.example.com/a.png", transport=_transport(200, png))

    assert _load("https://abc.supabase.co/storage/v1/object/public/a.png", transport=_transport(200, png)) == png


# ------------------------------------------------------------
# 리다이렉트 / 내부망 차단
# ------------------------------------------------------------

def _routes(routes, seen):
    """host -> (status, headers, content); 요청한 host는 seen에 기록"""
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        status, headers, content = routes[request.url.host]
        return httpx.Response(status, headers=headers, content=content)

    return httpx.MockTransport(handler)


def test_redirect_to_metadata_host_is_not_followed(monkeypatch):
    monkeypatch.setenv("BOM_IMAGE_HOST_REGEX", r"^[a-z0-9-]+\.supabase\.co$")
    seen = []
    transport = _routes(
        {"abc.supabase.co": (302, {"location": "http://169.254.169.254/latest/meta-data"}, b"")},
        seen,
    )

    with pytest.raises(ImageLoadError, match="not allowed|only https"):
        _load("https://abc.supabase.co/a.png", transport=transport)
    assert seen == ["abc.supabase.co"]


def test_redirect_to_other_host_is_checked_against_allowlist(monkeypatch):
    monkeypatch.setenv("BOM_IMAGE_HOST_REGEX", r"^[a-z0-9-]+\.supabase\.co$")
    seen = []
    transport = _routes(
        {"abc.supabase.co": (302, {"location": "https://evil.example.com/a.png"}, b"")},
        seen,
    )

    with pytest.raises(ImageLoadError, match="not allowed"):
        _load("https://abc.supabase.co/a.png", transport=transport)
    assert seen == ["abc.supabase.co"]


def test_redirect_within_allowed_hosts_is_followed(monkeypatch):
    monkeypatch.setenv("BOM_IMAGE_HOST_REGEX", r"^[a-z0-9-]+\.supabase\.co$")
    png = solid_png("#000000", size=(2, 2))
    seen = []
    transport = _routes(
        {
            "abc.supabase.co": (302, {"location": "https://cdn.supabase.co/b.png"}, b""),
            "cdn.supabase.co": (200, {"content-type": "image/png"}, png),
        },
        seen,
    )

    assert _load("https://abc.supabase.co/a.png", transport=transport) == png
    assert seen == ["abc.supabase.co", "cdn.supabase.co"]


def test_relative_redirect_is_followed():
    png = solid_png("#FFFFFF", size=(2, 2))

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old.png":
            return httpx.Response(301, headers={"location": "/new.png"})
        return httpx.Response(200, content=png)

    assert _load("https://example.com/old.png", transport=httpx.MockTransport(handler)) == png


def test_too_many_redirects_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"location": "/again.png"})

    with pytest.raises(ImageLoadError, match="too many redirects"):
        _load("https://example.com/loop.png", transport=httpx.MockTransport(handler))


def test_plain_http_is_rejected_with_allowlist(monkeypatch):
    monkeypatch.setenv("BOM_IMAGE_HOST_REGEX", r"^[a-z0-9-]+\.supabase\.co$")
    with pytest.raises(ImageLoadError, match="only https"):
        _load("http://abc.supabase.co/a.png", transport=_transport(200, b"x"))


@pytest.mark.parametrize(
    "url",
    [
        "http://127.0.0.1/a.png",
        "http://10.0.0.5/a.png",
        "http://169.254.169.254/latest/meta-data",
        "http://[::1]/a.png",
        "http://localhost:8000/a.png",
    ],
)
def test_internal_hosts_are_rejected(url):
    with pytest.raises(ImageLoadError, match="not allowed"):
        _load(url, transport=_transport(200, b"x"))


def test_response_over_byte_limit_fails(monkeypatch):
    monkeypatch.setenv("BOM_IMAGE_MAX_BYTES", "16")
    with pytest.raises(ImageLoadError, match="exceeds 16 bytes"):
        _load("https://example.com/big.png", transport=_transport(200, b"x" * 64))
    assert _load("https://example.com/small.png", transport=_transport(200, b"x" * 16)) == b"x" * 16
