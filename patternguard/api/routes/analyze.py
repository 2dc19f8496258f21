"""
Analyze Routes — POST /analyze and GET /rules.

Accepts {"files": [{"path", "content"}], "rules": {...}, "apply_fixes": bool},
runs one pass per file and returns diagnostics, rule failures and the fix plan
for each, plus patched sources when requested.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from patternguard.api.dependencies import get_analysis_worker
from patternguard.core.errors import UnknownRuleId
from patternguard.models.analysis_models import AnalyzeRequest, AnalyzeResponse
from patternguard.workers.analysis_worker import AnalysisWorker

logger = logging.getLogger("patternguard.api")
router = APIRouter()


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    req: AnalyzeRequest,
    worker: AnalysisWorker = Depends(get_analysis_worker),
):
    """Analyse the submitted files with the bundled rule catalogue."""
    if not req.files:
        raise HTTPException(status_code=400, detail="No files submitted")

    try:
        return await worker.analyze_many(req.files, req.rules, req.apply_fixes)
    except UnknownRuleId as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/rules")
async def list_rules(worker: AnalysisWorker = Depends(get_analysis_worker)):
    """List the rule catalogue the worker analyses with."""
    return {"rules": worker.registry.describe()}
