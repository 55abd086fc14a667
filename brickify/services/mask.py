# brickify/services/mask.py
from __future__ import annotations

import logging
import math
from numbers import Real
from typing import Any, Optional

import numpy as np

logger = logging.getLogger(__name__)

MASK_SIZE = 64

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off", ""}


def coerce_bit(value: Any) -> int:
    """
    느슨한 타입의 마스크 셀 값 -> 0 | 1
    - bool: 그대로
    - 숫자: 0.5 이상이면 1 (확률맵 형태 대응)
    - 문자열: "1"/"true"/... 또는 숫자 문자열
    그 외는 ValueError
    """
    if isinstance(value, (bool, np.bool_)):
        return 1 if value else 0

    if isinstance(value, (Real, np.number)):
        f = float(value)
        if math.isnan(f) or math.isinf(f):
            raise ValueError(f"mask value is not finite: {value!r}")
        return 1 if f >= 0.5 else 0

    if isinstance(value, str):
        key = value.strip().lower()
        if key in _TRUE_WORDS:
            return 1
        if key in _FALSE_WORDS:
            return 0
        try:
            return coerce_bit(float(key))
        except ValueError:
            raise ValueError(f"mask value is not a bit: {value!r}") from None

    raise ValueError(f"mask value is not a bit: {value!r}")


def parse_mask(raw: Any) -> Optional[np.ndarray]:
    """
    64x64 마스크 입력 -> (64, 64) bool 배열.
    모양이 틀리거나 셀 값을 해석할 수 없으면 None (= 전체 활성).
    잘못된 마스크는 오류가 아니라 "마스크 없음"으로 처리한다.
    """
    if raw is None:
        return None

    if isinstance(raw, np.ndarray):
        raw = raw.tolist()

    if isinstance(raw, (str, bytes)) or not isinstance(raw, (list, tuple)):
        logger.info("[MASK] ignored: not a list (%s)", type(raw).__name__)
        return None

    if len(raw) != MASK_SIZE:
        logger.info("[MASK] ignored: rows=%d", len(raw))
        return None

    out = np.zeros((MASK_SIZE, MASK_SIZE), dtype=bool)
    for y, row in enumerate(raw):
        if isinstance(row, (str, bytes)) or not isinstance(row, (list, tuple)) or len(row) != MASK_SIZE:
            logger.info("[MASK] ignored: row %d is malformed", y)
            return None
        try:
            out[y] = [coerce_bit(v) == 1 for v in row]
        except ValueError as e:
            logger.info("[MASK] ignored: row %d %s", y, e)
            return None

    return out


def _mask_index(i: int, size: int) -> int:
    return min(MASK_SIZE - 1, (i * MASK_SIZE) // size)


def mask_value_at(x: int, y: int, mask: Optional[np.ndarray], grid_w: int, grid_h: int) -> int:
    """
    그리드 좌표 -> 마스크 최근접 셀 값.
    mask가 None이면 항상 1.
    """
    if mask is None:
        return 1
    mx = _mask_index(x, grid_w)
    my = _mask_index(y, grid_h)
    return 1 if mask[my, mx] else 0


def resample_mask(mask: Optional[np.ndarray], grid_w: int, grid_h: int) -> np.ndarray:
    """mask_value_at을 그리드 전체에 적용한 (grid_h, grid_w) bool 배열"""
    if mask is None:
        return np.ones((grid_h, grid_w), dtype=bool)

    xs = np.minimum(MASK_SIZE - 1, (np.arange(grid_w) * MASK_SIZE) // grid_w)
    ys = np.minimum(MASK_SIZE - 1, (np.arange(grid_h) * MASK_SIZE) // grid_h)
    return mask[np.ix_(ys, xs)]


def mask_coverage(mask: np.ndarray) -> float:
    return float(mask.mean())


def circle_mask(radius_ratio: float) -> np.ndarray:
    """가운데 원형 마스크 (반지름 = radius_ratio * 64)"""
    radius = radius_ratio * MASK_SIZE
    center = (MASK_SIZE - 1) / 2.0
    yy, xx = np.mgrid[0:MASK_SIZE, 0:MASK_SIZE]
    return (xx - center) ** 2 + (yy - center) ** 2 <= radius * radius


def repair_mask(
    mask: Optional[np.ndarray],
    min_coverage: float = 0.02,
    max_coverage: float = 0.92,
    radius_ratio: float = 0.42,
) -> Optional[np.ndarray]:
    """
    AI가 준 마스크가 거의 비었거나 거의 꽉 찼으면 믿지 않고 원형 마스크로 교체.
    임계값은 경험치라서 env로 조정한다.
    """
    if mask is None:
        return None

    coverage = mask_coverage(mask)
    if min_coverage <= coverage <= max_coverage:
        return mask

    logger.info(
        "[MASK] degenerate coverage=%.3f (allowed %.2f~%.2f) -> circle r=%.2f",
        coverage,
        min_coverage,
        max_coverage,
        radius_ratio,
    )
    return circle_mask(radius_ratio)
