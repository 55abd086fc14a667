from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple


PartName = str

FALLBACK_PART: PartName = "plate_1x1"


@dataclass(frozen=True)
class BrickShape:
    """
    카탈로그에 등록된 직사각형 플레이트.
    part는 'plate_2x4' 같은 정규 이름, (w,h)는 선언된 방향 그대로.
    """
    part: PartName
    w: int
    h: int

    @property
    def area(self) -> int:
        return self.w * self.h

    def orientations(self) -> List[Tuple[int, int]]:
        # 정사각형이 아니면 (w,h) 다음 (h,w) 순서로 시도
        if self.w == self.h:
            return [(self.w, self.h)]
        return [(self.w, self.h), (self.h, self.w)]


class BrickCatalog:
    """
    - 지원 플레이트 목록의 단일 소스(SSOT)
    - 면적 내림차순 정렬은 한 번만 (같은 면적이면 선언 순서 유지)
    - 프로세스 전역 읽기 전용
    """

    # 선언 순서가 동점 처리 기준이므로 순서를 바꾸면 결과가 달라진다
    _DECLARED: Tuple[Tuple[PartName, int, int], ...] = (
        ("plate_2x8", 2, 8),
        ("plate_1x8", 1, 8),
        ("plate_2x6", 2, 6),
        ("plate_1x6", 1, 6),
        ("plate_2x4", 2, 4),
        ("plate_1x4", 1, 4),
        ("plate_3x4", 3, 4),
        ("plate_3x3", 3, 3),
        ("plate_2x3", 2, 3),
        ("plate_1x3", 1, 3),
        ("plate_4x4", 4, 4),
        ("plate_4x3", 4, 3),
        ("plate_4x2", 4, 2),
        ("plate_2x2", 2, 2),
        ("plate_1x2", 1, 2),
        ("plate_1x1", 1, 1),
    )

    def __init__(self, declared: Tuple[Tuple[PartName, int, int], ...] | None = None) -> None:
        rows = declared if declared is not None else self._DECLARED
        shapes = [BrickShape(part, w, h) for part, w, h in rows]
        for s in shapes:
            if s.w <= 0 or s.h <= 0:
                raise ValueError(f"Invalid brick size: {s.part} {s.w}x{s.h}")

        # sorted()는 stable -> 동일 면적은 선언 순서 유지
        self._shapes: Tuple[BrickShape, ...] = tuple(sorted(shapes, key=lambda s: s.area, reverse=True))
        self._area: Dict[PartName, int] = {}
        for s in self._shapes:
            self._area.setdefault(s.part, s.area)

    def shapes(self) -> Tuple[BrickShape, ...]:
        return self._shapes

    def parts(self) -> List[PartName]:
        return [s.part for s in self._shapes]

    def area_of(self, part: PartName) -> int:
        # 카탈로그에 없는 이름은 1셀로 취급
        return self._area.get(part, 1)

    def __len__(self) -> int:
        return len(self._shapes)

    def __iter__(self):
        return iter(self._shapes)


CATALOG = BrickCatalog()
