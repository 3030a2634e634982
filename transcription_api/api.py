from __future__ import annotations

import json

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from .config_loader import toolchain_from_config
from .logging_utils import get_logger
from .pipeline import handle
from .runner import readiness
from .schemas import TranscriptionRequest


router = APIRouter()
log = get_logger("transcription-api")

HEALTH_TEXT = "transcription API running"


@router.get("/health", response_class=PlainTextResponse)
def health() -> str:
    return HEALTH_TEXT


@router.get("/readyz")
def readyz(request: Request):
    cfg = request.app.state.config
    return JSONResponse(readiness(toolchain_from_config(cfg)))


async def _parse_request(request: Request) -> TranscriptionRequest:
    raw = await request.body()
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError):
        raise HTTPException(status_code=400, detail="could not decode request body")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="request body must be a JSON object")
    try:
        return TranscriptionRequest.model_validate(data)
    except ValidationError:
        raise HTTPException(status_code=400, detail="could not decode request body")


@router.post("/transcription")
async def transcription(request: Request):
    req = await _parse_request(request)
    log.info("transcription.request", extra={"media_type": req.media_type})
    # tool calls block; keep them off the event loop
    resp, status = await run_in_threadpool(handle, req, request.app.state.config)
    return JSONResponse(resp.to_payload(), status_code=status)
