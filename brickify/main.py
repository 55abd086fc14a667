# brickify/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from brickify.core.env import app_env, cors_allow_origins, cors_allow_origin_regex, log_level
from brickify.core.errors import register_exception_handlers
from brickify.routers.bom import router as bom_router

logging.basicConfig(
    level=log_level(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("brickify")

app = FastAPI(title="Brickify BOM Server")
register_exception_handlers(app)

ENV = (app_env() or "local").lower()

origins = cors_allow_origins() or []
if isinstance(origins, str):
    origins = [o.strip() for o in origins.split(",") if o.strip()]

origin_regex = cors_allow_origin_regex()

# local 기본값 (next dev 서버)
if ENV == "local" and not origins and not origin_regex:
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

# prod 기본값: vercel preview/배포 도메인 대응
if ENV == "prod" and not origin_regex:
    origin_regex = r"^https://.*\.vercel\.app$"

logger.info("[BOOT] ENV=%s origins=%s origin_regex=%s", ENV, origins, origin_regex)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_origin_regex=origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
async def health_check():
    return {"status": "ok"}

app.include_router(bom_router)
