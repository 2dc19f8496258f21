"""
PatternGuard FastAPI Application — Rule-based static analysis over HTTP.

  POST /analyze → diagnostics, rule failures and fix plans per file
  GET  /rules   → the rule catalogue
  GET  /health  → {"status": "ok"}
"""

from __future__ import annotations

import logging

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from patternguard.api.routes.analyze import router as analyze_router
from patternguard.api.routes.health import router as health_router
from patternguard.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("patternguard")

app = FastAPI(
    title="PatternGuard",
    description="Rule-based static analysis with non-overlapping automatic fixes",
    version="1.0.0",
)

app.include_router(analyze_router)
app.include_router(health_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = await request.body()
    logger.error(f"Validation Error. Raw body: {body.decode('utf-8')[:500]} | Errors: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors()), "body": body.decode("utf-8")[:100]},
    )
