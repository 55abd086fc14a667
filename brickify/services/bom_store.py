# brickify/services/bom_store.py
from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import quote

from brickify.core.env import bom_store_ttl_seconds
from brickify.schemas.bom import BomResult, DownloadFile
from brickify.services.bom import bom_to_csv

import logging
logger = logging.getLogger(__name__)


@dataclass
class BomRecord:
    result: BomResult
    csv: str
    expires_at: float


class BomStore:
    """
    jobId -> 저장된 BOM (bom.json + parts-list.csv)
    프로세스 메모리에만 둔다 (워커 간 공유 X).
    """

    def __init__(self, ttl_seconds: Optional[int] = None) -> None:
        self._store: Dict[str, BomRecord] = {}
        self._ttl = ttl_seconds

    def put(self, job_id: str, result: BomResult) -> str:
        self._cleanup()
        ttl = max(60, int(self._ttl if self._ttl is not None else bom_store_ttl_seconds()))
        csv = bom_to_csv(result.bom)
        self._store[job_id] = BomRecord(result=result, csv=csv, expires_at=time.time() + ttl)

        logger.info("[STORE] put jobId=%s items=%d size=%d ttl=%ds", job_id, result.uniqueItems, len(self._store), ttl)
        return csv

    def get(self, job_id: str) -> BomRecord:
        self._cleanup()
        logger.info("[STORE] get jobId=%s size=%d", job_id, len(self._store))

        rec = self._store.get(job_id)
        if not rec:
            raise KeyError(job_id)
        if rec.expires_at < time.time():
            self._store.pop(job_id, None)
            raise KeyError(job_id)
        return rec

    def files(self, job_id: str) -> List[DownloadFile]:
        rec = self.get(job_id)
        bom_json = json.dumps(rec.result.model_dump(), ensure_ascii=False)
        return [
            DownloadFile(name="bom.json", url=f"data:application/json;charset=utf-8,{quote(bom_json)}"),
            DownloadFile(name="parts-list.csv", url=f"data:text/csv;charset=utf-8,{quote(rec.csv)}"),
            DownloadFile(name="build-guide.pdf", status="준비중"),
        ]

    def _cleanup(self) -> None:
        now = time.time()
        expired_keys = [k for k, v in self._store.items() if v.expires_at < now]
        for k in expired_keys:
            self._store.pop(k, None)


bom_store = BomStore()
