"""
Scan Route — POST /scan

Accepts {"files": [{"path", "content"}], "overrides": {...}} and returns the
sorted analysis report.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from hyplint.api.dependencies import get_analysis_worker
from hyplint.config import settings
from hyplint.core.errors import ConfigurationError
from hyplint.models.scan_models import ScanRequest, ScanResponse
from hyplint.workers.analysis_worker import AnalysisWorker

logger = logging.getLogger("hyplint.api")
router = APIRouter()


@router.post("/scan", response_model=ScanResponse)
async def scan(req: ScanRequest, worker: AnalysisWorker = Depends(get_analysis_worker)):
    """Analyze the submitted Rust files as one run."""
    if not req.files:
        raise HTTPException(status_code=400, detail="No files provided")

    for f in req.files:
        if len(f.content.encode("utf-8")) > settings.max_file_size_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"File '{f.path}' exceeds maximum size of {settings.max_file_size_bytes} bytes",
            )

    try:
        return await worker.run_scan(req)
    except ConfigurationError:
        raise
    except Exception:
        logger.exception("Unexpected scan error")
        raise HTTPException(status_code=500, detail="Scan failed")
