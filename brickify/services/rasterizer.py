# brickify/services/rasterizer.py
from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional, Sequence

import numpy as np
from PIL import Image, UnidentifiedImageError

from brickify.core.env import image_max_pixels
from brickify.core.errors import BomInputError, ImageLoadError
from brickify.services.mask import resample_mask
from brickify.services.palette import quantize_pixels


@dataclass
class Raster:
    """
    논리 그리드 한 장 (계산 한 번 동안만 사용)
    color_grid[y][x] = 팔레트 색, active_grid[y][x] = 마스크 포함 여부
    """
    width: int
    height: int
    color_grid: List[List[str]]
    active_grid: List[List[bool]]


def check_grid_size(grid_w: int, grid_h: int) -> None:
    # bool은 int의 하위 타입이라 걸러준다
    for name, v in (("gridW", grid_w), ("gridH", grid_h)):
        if isinstance(v, bool) or not isinstance(v, (int, np.integer)) or v <= 0:
            raise BomInputError(f"{name} must be a positive integer, got {v!r}")


def decode_image(data: bytes) -> Image.Image:
    """
    바이트 -> Pillow 이미지.
    비었거나 디코딩할 수 없으면 ImageLoadError.
    """
    if not data:
        raise ImageLoadError("image data is empty")
    try:
        img = Image.open(BytesIO(data))
        # 헤더만 읽은 상태에서 크기 확인 (64x64 샘플링에 거대한 디코딩은 불필요)
        w, h = img.size
        limit = image_max_pixels()
        if w * h > limit:
            raise ImageLoadError(f"image is too large: {w}x{h} exceeds {limit} pixels")
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageLoadError(f"cannot decode image: {e}") from e
    return img


def _resize_to_grid(img: Image.Image, grid_w: int, grid_h: int) -> Image.Image:
    """
    셀 1개 = 샘플 1개.
    NEAREST로 줄여서 색상이 번지지 않도록 유지.
    """
    # Pillow 버전에 따라 Resampling enum 유무가 달라질 수 있어서 안전하게 처리
    resampling = getattr(Image, "Resampling", None)
    if resampling is not None:
        return img.resize((grid_w, grid_h), resample=resampling.NEAREST)
    return img.resize((grid_w, grid_h), resample=Image.NEAREST)


def rasterize(
    image: Image.Image,
    grid_w: int,
    grid_h: int,
    palette: Sequence[str],
    mask: Optional[np.ndarray] = None,
) -> Raster:
    """
    이미지를 grid_w x grid_h로 샘플링해서
    셀마다 팔레트 색(color_grid)과 활성 여부(active_grid)를 만든다.
    """
    check_grid_size(grid_w, grid_h)
    grid_w, grid_h = int(grid_w), int(grid_h)

    small = _resize_to_grid(image.convert("RGBA"), grid_w, grid_h)
    rgba = np.array(small, dtype=np.uint8)  # (H, W, 4)

    idx = quantize_pixels(rgba, palette)
    active = resample_mask(mask, grid_w, grid_h)

    color_grid = [[palette[i] for i in row] for row in idx.tolist()]
    active_grid = active.tolist()

    return Raster(width=grid_w, height=grid_h, color_grid=color_grid, active_grid=active_grid)
