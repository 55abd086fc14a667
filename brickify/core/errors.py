# brickify/core/errors.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BomError(Exception):
    """BOM 계산 파이프라인에서 발생하는 오류의 공통 부모"""


class PaletteError(BomError, ValueError):
    """팔레트가 8개의 유효한 #RRGGBB 색상이 아님"""


class BomInputError(BomError, ValueError):
    """그리드 크기 등 계산 입력값 오류"""


class ImageLoadError(BomError):
    """
    이미지 로딩/디코딩 실패.
    네트워크 오류, 빈 응답, 손상된 데이터 모두 여기로 모은다.
    """


def error_payload(code: str, message: str, detail: Optional[Any] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"error": {"code": code, "message": message}}
    if detail is not None:
        payload["error"]["detail"] = detail
    return payload


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        if isinstance(exc.detail, dict):
            code = str(exc.detail.get("code", "HTTP_EXCEPTION"))
            message = str(exc.detail.get("message", "요청 처리 중 오류가 발생했습니다."))
            detail = exc.detail.get("detail")
            return JSONResponse(status_code=exc.status_code, content=error_payload(code, message, detail))

        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload("HTTP_EXCEPTION", str(exc.detail) if exc.detail else "요청 처리 중 오류가 발생했습니다."),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_payload("VALIDATION_ERROR", "요청 값이 올바르지 않습니다.", exc.errors()),
        )

    @app.exception_handler(PaletteError)
    async def palette_exception_handler(request: Request, exc: PaletteError):
        return JSONResponse(
            status_code=422,
            content=error_payload("INVALID_PALETTE", "팔레트는 8개의 #RRGGBB 색상이어야 합니다.", str(exc)),
        )

    @app.exception_handler(BomInputError)
    async def input_exception_handler(request: Request, exc: BomInputError):
        return JSONResponse(
            status_code=422,
            content=error_payload("INVALID_INPUT", "요청 값이 올바르지 않습니다.", str(exc)),
        )

    @app.exception_handler(ImageLoadError)
    async def image_exception_handler(request: Request, exc: ImageLoadError):
        logger.warning("[IMAGE] load failed path=%s error=%s", request.url.path, exc)
        return JSONResponse(
            status_code=502,
            content=error_payload("IMAGE_LOAD_FAILED", "이미지를 불러오지 못했습니다.", str(exc)),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("[ERROR] unhandled path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_payload("INTERNAL_ERROR", "서버 오류가 발생했습니다."),
        )
