# tests/conftest.py
from __future__ import annotations

import base64
import struct
import zlib
from io import BytesIO
from typing import List, Sequence, Tuple

import pytest
from PIL import Image

PALETTE = [
    "#FFFFFF",
    "#000000",
    "#FF0000",
    "#00FF00",
    "#0000FF",
    "#FFFF00",
    "#00FFFF",
    "#FF00FF",
]


def hex_rgba(hex_str: str, alpha: int = 255) -> Tuple[int, int, int, int]:
    h = hex_str.lstrip("#")
    return (int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16), alpha)


def solid_png(hex_str: str, size: Tuple[int, int] = (40, 40)) -> bytes:
    img = Image.new("RGBA", size, hex_rgba(hex_str))
    return png_bytes(img)


def pixels_png(rows: Sequence[Sequence[str]]) -> bytes:
    """rows[y][x] = "#RRGGBB" 그대로 그린 이미지"""
    h = len(rows)
    w = len(rows[0])
    img = Image.new("RGBA", (w, h))
    for y, row in enumerate(rows):
        for x, hx in enumerate(row):
            img.putpixel((x, y), hex_rgba(hx))
    return png_bytes(img)


def png_bytes(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def data_url(data: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(data).decode("ascii")


def top_left_mask(rows: int, cols: int) -> List[List[int]]:
    return [[1 if (y < rows and x < cols) else 0 for x in range(64)] for y in range(64)]


@pytest.fixture
def palette() -> List[str]:
    return list(PALETTE)


def forged_png(width: int, height: int) -> bytes:
    """헤더(IHDR)만 거대한 크기를 주장하는 작은 PNG"""
    def chunk(kind: bytes, body: bytes) -> bytes:
        crc = zlib.crc32(kind + body) & 0xFFFFFFFF
        return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", crc)

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", ihdr)
        + chunk(b"IDAT", zlib.compress(b""))
        + chunk(b"IEND", b"")
    )
