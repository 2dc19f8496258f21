"""
Health Check Route — GET /health
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from patternguard.api.dependencies import get_analysis_worker
from patternguard.workers.analysis_worker import AnalysisWorker

router = APIRouter()


@router.get("/health")
async def health(worker: AnalysisWorker = Depends(get_analysis_worker)):
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "rules": len(worker.rule_engine.rule_ids),
        "cache": worker.cache.stats(),
    }
