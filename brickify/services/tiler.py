# brickify/services/tiler.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from brickify.domain.brick_catalog import CATALOG, FALLBACK_PART, BrickCatalog


@dataclass(frozen=True)
class Placement:
    """브릭 1개의 좌상단 좌표 + 실제 배치된 방향의 크기"""
    x: int
    y: int
    w: int
    h: int
    part: str
    color: str


def tile(
    color_grid: Sequence[Sequence[str]],
    active_grid: Sequence[Sequence[bool]],
    grid_w: int,
    grid_h: int,
    catalog: BrickCatalog = CATALOG,
) -> List[Placement]:
    """
    그리디 직사각형 타일링.

    - 행 우선(위->아래, 왼->오) 스캔
    - 비활성 셀은 used 처리만 하고 브릭을 놓지 않는다
    - 카탈로그 순서(면적 내림차순)로 처음 들어맞는 모양을 선택, 되돌아가지 않음
    - 아무것도 안 맞으면 plate_1x1

    스캔 순서와 모양 시도 순서가 결과를 결정하므로 바꾸지 말 것.
    """
    used = [[False] * grid_w for _ in range(grid_h)]
    placements: List[Placement] = []

    def can_place(x: int, y: int, w: int, h: int, color: str) -> bool:
        if x + w > grid_w or y + h > grid_h:
            return False
        for yy in range(y, y + h):
            used_row = used[yy]
            active_row = active_grid[yy]
            color_row = color_grid[yy]
            for xx in range(x, x + w):
                if used_row[xx] or not active_row[xx] or color_row[xx] != color:
                    return False
        return True

    def mark(x: int, y: int, w: int, h: int) -> None:
        for yy in range(y, y + h):
            row = used[yy]
            for xx in range(x, x + w):
                row[xx] = True

    for y in range(grid_h):
        for x in range(grid_w):
            if used[y][x]:
                continue
            if not active_grid[y][x]:
                used[y][x] = True
                continue

            color = color_grid[y][x]
            placed = None
            for shape in catalog.shapes():
                for w, h in shape.orientations():
                    if can_place(x, y, w, h, color):
                        placed = Placement(x=x, y=y, w=w, h=h, part=shape.part, color=color)
                        break
                if placed is not None:
                    break

            if placed is None:
                placed = Placement(x=x, y=y, w=1, h=1, part=FALLBACK_PART, color=color)

            mark(placed.x, placed.y, placed.w, placed.h)
            placements.append(placed)

    return placements
