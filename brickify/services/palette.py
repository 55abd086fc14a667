# brickify/services/palette.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from brickify.core.errors import PaletteError

logger = logging.getLogger(__name__)

PALETTE_SIZE = 8

# 알파가 이 값보다 작으면 투명(배경) 픽셀로 보고 palette[0]으로 보낸다
ALPHA_THRESHOLD = 10

_HEX_RE = re.compile(r"^#[0-9A-F]{6}$")

# ------------------------------------------------------------
# Data model
# ------------------------------------------------------------

@dataclass(frozen=True)
class PaletteColor:
    name: str
    hex: str
    rgb: Tuple[int, int, int]


def normalize_hex(hex_str: Any) -> str:
    """
    "#rrggbb" / "rrggbb" / " #RRGGBB " -> "#RRGGBB"
    형식이 맞지 않으면 빈 문자열.
    """
    if not isinstance(hex_str, str):
        return ""
    s = hex_str.strip().upper()
    if not s:
        return ""
    if not s.startswith("#"):
        s = f"#{s}"
    # "#RRGGBB"만 허용
    if not _HEX_RE.match(s):
        return ""
    return s


def hex_to_rgb(hex_str: str) -> Optional[Tuple[int, int, int]]:
    h = normalize_hex(hex_str)
    if not h:
        return None
    return (int(h[1:3], 16), int(h[3:5], 16), int(h[5:7], 16))


def _dist2(a: Tuple[int, int, int], b: Tuple[int, int, int]) -> int:
    return (a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2


def _color(name: str, hex_str: str) -> PaletteColor:
    rgb = hex_to_rgb(hex_str)
    if rgb is None:
        raise ValueError(f"invalid default palette color: {hex_str!r}")
    return PaletteColor(name=name, hex=normalize_hex(hex_str), rgb=rgb)


# ------------------------------------------------------------
# 기본 팔레트
# - 비전 분석이 팔레트를 못 만들었을 때만 사용 (allow_fallback=True)
# - 0번은 배경색: 투명 픽셀이 여기로 매핑된다
# ------------------------------------------------------------

DEFAULT_PALETTE_COLORS: Tuple[PaletteColor, ...] = (
    _color("off-white", "#FAF9F6"),
    _color("charcoal", "#27272A"),
    _color("graphite", "#52525B"),
    _color("fog-gray", "#A1A1AA"),
    _color("terracotta", "#C2410C"),
    _color("amber", "#F59E0B"),
    _color("cobalt", "#2563EB"),
    _color("leaf", "#16A34A"),
)

DEFAULT_PALETTE: List[str] = [c.hex for c in DEFAULT_PALETTE_COLORS]


# ------------------------------------------------------------
# Validation
# ------------------------------------------------------------

def validate_palette(colors: Any) -> List[str]:
    """
    8개의 서로 다른 #RRGGBB 색상인지 검사하고 정규화된 리스트를 반환.
    자르거나 채우지 않는다. 조건이 맞지 않으면 PaletteError.
    """
    if isinstance(colors, (str, bytes)) or not isinstance(colors, Sequence):
        raise PaletteError(f"palette must be a list of {PALETTE_SIZE} colors, got {type(colors).__name__}")

    if len(colors) != PALETTE_SIZE:
        raise PaletteError(f"palette must have exactly {PALETTE_SIZE} colors, got {len(colors)}")

    palette: List[str] = []
    for idx, raw in enumerate(colors):
        hx = normalize_hex(raw)
        if not hx:
            raise PaletteError(f"palette[{idx}] is not a #RRGGBB color: {raw!r}")
        if hx in palette:
            raise PaletteError(f"palette[{idx}] duplicates {hx}")
        palette.append(hx)

    return palette


def resolve_palette(colors: Any, *, allow_fallback: bool = False) -> List[str]:
    """
    - allow_fallback=False: validate_palette와 동일 (오류 전파)
    - allow_fallback=True: 잘못된 팔레트면 DEFAULT_PALETTE로 교체하고 경고 로그
    """
    try:
        return validate_palette(colors)
    except PaletteError as e:
        if not allow_fallback:
            raise
        logger.warning("[PALETTE] invalid palette, using default palette: %s", e)
        return list(DEFAULT_PALETTE)


# ------------------------------------------------------------
# Quantization
# ------------------------------------------------------------

def nearest_palette_color(r: int, g: int, b: int, palette: Sequence[str], alpha: int = 255) -> str:
    """
    RGB -> 팔레트에서 제곱 유클리드 거리가 가장 가까운 색.
    거리가 같으면 팔레트 앞쪽이 이긴다.
    """
    if alpha < ALPHA_THRESHOLD:
        return palette[0]

    rgb = (int(r), int(g), int(b))
    best = palette[0]
    best_d = None
    for p in palette:
        prgb = hex_to_rgb(p)
        if prgb is None:
            # palette_array와 동일하게 잘못된 색은 오류
            raise PaletteError(f"not a #RRGGBB color: {p!r}")
        d = _dist2(rgb, prgb)
        if best_d is None or d < best_d:
            best = p
            best_d = d
    return best


def palette_array(palette: Sequence[str]) -> np.ndarray:
    rows = []
    for p in palette:
        rgb = hex_to_rgb(p)
        if rgb is None:
            raise PaletteError(f"not a #RRGGBB color: {p!r}")
        rows.append(rgb)
    return np.array(rows, dtype=np.int32)  # (P, 3)


def quantize_pixels(rgba: np.ndarray, palette: Sequence[str]) -> np.ndarray:
    """
    (H, W, 4) uint8 RGBA 배열 -> (H, W) 팔레트 인덱스 배열.
    nearest_palette_color의 벡터화 버전 (argmin은 첫 번째 최소값을 고른다).
    """
    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise ValueError(f"expected (H, W, 4) RGBA array, got shape {rgba.shape}")

    pal = palette_array(palette)
    rgb = rgba[:, :, :3].astype(np.int32)

    diff = rgb[:, :, None, :] - pal[None, None, :, :]  # (H, W, P, 3)
    dist = (diff * diff).sum(axis=-1)                   # (H, W, P)
    idx = dist.argmin(axis=-1)

    transparent = rgba[:, :, 3] < ALPHA_THRESHOLD
    idx[transparent] = 0
    return idx
