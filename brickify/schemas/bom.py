# brickify/schemas/bom.py
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class BomItem(BaseModel):
    """
    (플레이트 종류, 색상)별 개수
    """
    part: str
    color: str
    count: int


class BomResult(BaseModel):
    """
    BOM 전체 결과
    - totalPieces: 피스 수 = sum(count)
    - totalStuds: 면적 합 = sum(count * 면적)
    - uniqueItems: len(bom)
    """
    bom: List[BomItem] = Field(default_factory=list)
    totalPieces: int = 0
    totalStuds: int = 0
    uniqueItems: int = 0


class BomComputeRequest(BaseModel):
    """
    프리뷰 이미지 URL 기반 BOM 계산 요청
    - previewImageUrl: http(s) URL 또는 data URL
    - mask64: 64x64 0/1 행렬 (형식이 틀리면 무시되고 전체 영역 사용)
    """
    previewImageUrl: str = Field(..., min_length=1)
    palette8: Optional[Any] = None
    gridW: int = Field(64, ge=1, le=256)
    gridH: int = Field(64, ge=1, le=256)
    mask64: Optional[Any] = None

    # 팔레트가 잘못됐을 때 기본 팔레트로 대체할지
    paletteFallback: bool = False
    # 거의 비었거나 꽉 찬 마스크를 원형 마스크로 교체할지
    repairMask: bool = False


class SaveBomRequest(BaseModel):
    jobId: str = Field(..., min_length=1, max_length=128)
    result: BomResult


class SaveBomResponse(BaseModel):
    ok: bool = True
    jobId: str
    csv: str


class DownloadFile(BaseModel):
    name: str
    url: Optional[str] = None
    status: Optional[str] = None


class DownloadResponse(BaseModel):
    jobId: str
    files: List[DownloadFile]
    note: Optional[str] = None
