# brickify/routers/bom.py
from fastapi import APIRouter, UploadFile, File, HTTPException, Form, Query
from starlette.concurrency import run_in_threadpool
from typing import Any, List, Optional
import json

from brickify.core.env import image_max_bytes
from brickify.schemas.bom import (
    BomComputeRequest,
    BomResult,
    DownloadResponse,
    SaveBomRequest,
    SaveBomResponse,
)
from brickify.services.bom import compute_bom, compute_bom_from_preview
from brickify.services.bom_store import bom_store

router = APIRouter(tags=["bom"])

DOWNLOAD_NOTE = "층별 조립 가이드는 현재 준비중입니다."


def parse_palette_field(palette: Optional[str]) -> List[Any]:
    """
    Form 필드 palette
    - JSON 배열: '["#FFFFFF", ...]'
    - 콤마 구분: '#FFFFFF,#000000,...'
    검증은 서비스에서 (개수/형식 오류는 422 INVALID_PALETTE)
    """
    if not palette:
        return []
    raw = palette.strip()
    if raw.startswith("["):
        try:
            obj = json.loads(raw)
        except ValueError:
            raise HTTPException(status_code=422, detail="palette JSON을 해석할 수 없습니다.")
        if not isinstance(obj, list):
            raise HTTPException(status_code=422, detail="palette는 배열이어야 합니다.")
        return obj
    return [p.strip() for p in raw.split(",") if p.strip()]


def parse_mask_field(mask: Optional[str]) -> Any:
    # 마스크는 잘못돼도 오류가 아니라 "마스크 없음"
    if not mask:
        return None
    try:
        return json.loads(mask)
    except ValueError:
        return None


@router.post("/api/bom/compute", response_model=BomResult)
async def compute_from_preview(req: BomComputeRequest) -> BomResult:
    return await compute_bom_from_preview(
        req.previewImageUrl,
        req.palette8,
        req.gridW,
        req.gridH,
        req.mask64,
        allow_palette_fallback=req.paletteFallback,
        repair_mask=req.repairMask,
    )


@router.post("/api/bom/upload", response_model=BomResult)
async def compute_from_upload(
    image: UploadFile = File(...),
    palette: Optional[str] = Form(None),
    gridW: int = Form(64, ge=1, le=256),
    gridH: int = Form(64, ge=1, le=256),
    mask: Optional[str] = Form(None),
    repairMask: bool = Form(False),
) -> BomResult:
    if not image:
        raise HTTPException(status_code=400, detail="이미지 파일이 필요합니다.")

    # 최대 크기 + 1바이트만 읽어서 초과 여부 판단
    limit = image_max_bytes()
    image_bytes = await image.read(limit + 1)
    if len(image_bytes) > limit:
        raise HTTPException(
            status_code=413,
            detail={"code": "IMAGE_TOO_LARGE", "message": "이미지 파일이 너무 큽니다.", "detail": limit},
        )
    palette8 = parse_palette_field(palette)
    mask64 = parse_mask_field(mask)

    # 타일링은 CPU 작업이라 이벤트 루프 밖에서
    return await run_in_threadpool(
        compute_bom,
        image_bytes,
        palette8,
        gridW,
        gridH,
        mask64,
        repair_mask=repairMask,
    )


@router.post("/api/save-bom", response_model=SaveBomResponse)
async def save_bom(req: SaveBomRequest) -> SaveBomResponse:
    csv = bom_store.put(req.jobId, req.result)
    return SaveBomResponse(ok=True, jobId=req.jobId, csv=csv)


@router.get("/api/download", response_model=DownloadResponse)
async def download(jobId: str = Query(..., min_length=1)) -> DownloadResponse:
    try:
        files = bom_store.files(jobId)
    except KeyError:
        raise HTTPException(
            status_code=404,
            detail={"code": "BOM_NOT_FOUND", "message": "저장된 BOM이 없습니다.", "detail": jobId},
        )
    return DownloadResponse(jobId=jobId, files=files, note=DOWNLOAD_NOTE)
