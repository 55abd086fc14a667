# brickify/services/bom.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple

from starlette.concurrency import run_in_threadpool

from brickify.core.env import mask_circle_radius, mask_max_coverage, mask_min_coverage
from brickify.domain.brick_catalog import CATALOG, BrickCatalog
from brickify.schemas.bom import BomItem, BomResult
from brickify.services.image_loader import load_image_bytes
from brickify.services.mask import parse_mask, repair_mask as repair_degenerate_mask
from brickify.services.palette import resolve_palette
from brickify.services.rasterizer import check_grid_size, decode_image, rasterize
from brickify.services.tiler import Placement, tile

logger = logging.getLogger(__name__)


def aggregate(placements: Iterable[Placement], catalog: BrickCatalog = CATALOG) -> BomResult:
    """
    placements -> (part, color)별 개수 + 합계.
    정렬은 count 내림차순 (동률이면 처음 나온 순서).
    """
    counter: Dict[Tuple[str, str], int] = {}
    for p in placements:
        key = (p.part, p.color)
        counter[key] = counter.get(key, 0) + 1

    items = [BomItem(part=part, color=color, count=count) for (part, color), count in counter.items()]
    items.sort(key=lambda item: item.count, reverse=True)

    total_pieces = sum(item.count for item in items)
    total_studs = sum(item.count * catalog.area_of(item.part) for item in items)

    return BomResult(
        bom=items,
        totalPieces=total_pieces,
        totalStuds=total_studs,
        uniqueItems=len(items),
    )


def _csv_escape(v: Any) -> str:
    s = "" if v is None else str(v)
    if any(ch in s for ch in (",", '"', "\n", "\r")):
        return '"' + s.replace('"', '""') + '"'
    return s


def bom_to_csv(items: Iterable[BomItem]) -> str:
    """part,color,count 헤더 + 행 (줄바꿈은 \\n)"""
    lines: List[str] = ["part,color,count"]
    for item in items:
        lines.append(",".join(_csv_escape(v) for v in (item.part, item.color, item.count)))
    return "\n".join(lines)


def compute_bom(
    image_bytes: bytes,
    palette8: Any,
    grid_w: int = 64,
    grid_h: int = 64,
    mask64: Any = None,
    *,
    allow_palette_fallback: bool = False,
    repair_mask: bool = False,
    catalog: BrickCatalog = CATALOG,
) -> BomResult:
    """
    이미지 바이트 -> BOM (동기, 순수 계산)
    1) 팔레트/그리드 검증  2) 디코딩  3) 래스터화  4) 타일링  5) 집계
    """
    palette = resolve_palette(palette8, allow_fallback=allow_palette_fallback)
    check_grid_size(grid_w, grid_h)

    mask = parse_mask(mask64)
    if repair_mask:
        mask = repair_degenerate_mask(
            mask,
            min_coverage=mask_min_coverage(),
            max_coverage=mask_max_coverage(),
            radius_ratio=mask_circle_radius(),
        )

    img = decode_image(image_bytes)
    raster = rasterize(img, grid_w, grid_h, palette, mask)
    placements = tile(raster.color_grid, raster.active_grid, raster.width, raster.height, catalog)
    result = aggregate(placements, catalog)

    logger.info(
        "[BOM] grid=%dx%d mask=%s pieces=%d studs=%d unique=%d",
        raster.width,
        raster.height,
        "yes" if mask is not None else "no",
        result.totalPieces,
        result.totalStuds,
        result.uniqueItems,
    )
    return result


async def compute_bom_from_preview(
    preview_image_url: str,
    palette8: Any,
    grid_w: int = 64,
    grid_h: int = 64,
    mask64: Any = None,
    *,
    allow_palette_fallback: bool = False,
    repair_mask: bool = False,
) -> BomResult:
    """
    프리뷰 URL -> BOM.
    이미지 로딩 전에 팔레트를 먼저 검사해서, 잘못된 요청으로 네트워크를 타지 않게 한다.
    """
    palette = resolve_palette(palette8, allow_fallback=allow_palette_fallback)
    check_grid_size(grid_w, grid_h)

    image_bytes = await load_image_bytes(preview_image_url)

    # 여기부터는 CPU 작업만 남으니 스레드풀에서 한 번에 끝낸다
    return await run_in_threadpool(
        compute_bom,
        image_bytes,
        palette,
        grid_w,
        grid_h,
        mask64,
        repair_mask=repair_mask,
    )
